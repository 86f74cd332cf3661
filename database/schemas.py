"""
Pydantic schemas for request/response validation
Separate from SQLAlchemy models for clean API contracts

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from database.models import TemplateStatus, TemplateType


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==========================================
# TEMPLATE CONTENT (question schema)
# ==========================================

def _as_text(value: Any) -> Any:
    """Numeric ids/labels are accepted in their string form."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class Question(CamelModel):
    """One question inside a section. Unknown authoring keys are kept."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: Optional[str] = None
    label: Optional[str] = None
    type: str = "text"
    required: bool = False
    options: List[Any] = Field(default_factory=list)
    prompt_context: Optional[str] = None

    @field_validator("id", "label", "prompt_context", mode="before")
    @classmethod
    def coerce_text(cls, value):
        return _as_text(value)

    @field_validator("type", mode="before")
    @classmethod
    def default_type(cls, value):
        return "text" if value is None else value

    @field_validator("required", mode="before")
    @classmethod
    def default_required(cls, value):
        return False if value is None else value

    @field_validator("options", mode="before")
    @classmethod
    def default_options(cls, value):
        return [] if value is None else value

    @property
    def display_label(self) -> str:
        if self.label:
            return self.label
        extra = self.model_extra or {}
        for key in ("question", "title"):
            if isinstance(extra.get(key), str) and extra[key].strip():
                return extra[key]
        return self.id or ""


class Section(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: Optional[str] = None
    title: str = ""
    description: Optional[str] = None
    questions: List[Question] = Field(default_factory=list)

    @field_validator("id", "description", mode="before")
    @classmethod
    def coerce_text(cls, value):
        return _as_text(value)

    @field_validator("title", mode="before")
    @classmethod
    def default_title(cls, value):
        return "" if value is None else _as_text(value)

    @field_validator("questions", mode="before")
    @classmethod
    def default_questions(cls, value):
        return [] if value is None else value


class TemplateContent(CamelModel):
    """
    Typed view over a version's content payload.

    Only the keys the generator relies on are modelled; everything else
    stays in model_extra untouched. Nulls fall back to defaults and numeric
    ids become strings; other wrong shapes (e.g. a section that is not an
    object) fail validation.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    sections: List[Section] = Field(default_factory=list)
    global_prompt_context: Optional[str] = None
    analysis_prompt_template: Optional[str] = None
    output_format: str = "markdown"

    @field_validator("sections", mode="before")
    @classmethod
    def default_sections(cls, value):
        return [] if value is None else value

    @field_validator("output_format", mode="before")
    @classmethod
    def default_output_format(cls, value):
        return "markdown" if value is None else value


# ==========================================
# TEMPLATE WRITE SCHEMAS
# ==========================================

class TemplateMeta(CamelModel):
    """Mutable template metadata. name/description are checked by the store."""
    name: Optional[str] = None
    description: Optional[str] = None
    type: TemplateType = TemplateType.DESIGN_REVIEW
    status: TemplateStatus = TemplateStatus.DRAFT
    tags: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class TemplateCreate(TemplateMeta):
    """Body for POST /templates"""
    content: Optional[Dict[str, Any]] = None


class TemplateMetaUpdate(CamelModel):
    """Metadata patch - every field optional, omitted fields keep prior values"""
    name: Optional[str] = None
    description: Optional[str] = None
    type: Optional[TemplateType] = None
    status: Optional[TemplateStatus] = None
    tags: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None


class TemplateUpdate(TemplateMetaUpdate):
    """Body for PUT /templates/{id}"""
    content: Optional[Dict[str, Any]] = None
    changelog: Optional[str] = None
    expected_version: Optional[str] = Field(
        None, description="currentVersion the caller last read; mismatch answers 409"
    )


class RevertRequest(CamelModel):
    version: str = Field(..., min_length=1, description="Version whose content becomes current again")
    expected_version: Optional[str] = None


class TemplateFilter(CamelModel):
    search: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


# ==========================================
# TEMPLATE READ SCHEMAS
# ==========================================

class HistoryEntry(CamelModel):
    version: str
    created_at: datetime
    created_by: str
    changelog: Optional[str] = None


class TemplateVersion(HistoryEntry):
    content: Dict[str, Any] = Field(default_factory=dict)


class TemplateSummary(CamelModel):
    """List view: no version content."""
    template_id: str
    name: str
    description: str
    type: TemplateType
    status: TemplateStatus
    tags: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    current_version: str
    version_count: int
    created_at: datetime
    updated_at: datetime


class TemplateAggregate(CamelModel):
    template_id: str
    name: str
    description: str
    type: TemplateType
    status: TemplateStatus
    tags: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    current_version: str
    versions: List[TemplateVersion] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    # Set by VersionStore.get: the version that was resolved and its normalized content
    resolved_version: Optional[str] = None
    current_content: Optional[Dict[str, Any]] = None

    def find_version(self, version: str) -> Optional[TemplateVersion]:
        for entry in self.versions:
            if entry.version == version:
                return entry
        return None
