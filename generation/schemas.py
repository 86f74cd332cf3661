"""
Pydantic schemas for the report generation pipeline.

Internal pipeline types (fragments, snippets, assembled prompt) plus the
request/response bodies of /generate, /ask and /analyze.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─── Internal pipeline types ───────────────────────────────────────────────────

class PromptFragment(BaseModel):
    """One answered question ready to be rendered into the prompt."""
    section_title: str
    question_label: str
    answer_value: str
    prompt_context: str


class RetrievedSnippet(BaseModel):
    """One reference passage returned by the knowledge base."""
    content: str
    source_id: str
    relevance_score: float = Field(..., ge=0.0, le=1.0)


class AssembledPrompt(BaseModel):
    text: str
    snippets_used: int = 0
    snippets_dropped: int = 0


# ─── /generate ─────────────────────────────────────────────────────────────────

class GenerationRequest(CamelModel):
    """responses is checked by the pipeline so an empty mapping answers 400."""
    template_id: Optional[str] = None
    version: Optional[str] = None
    responses: Optional[Dict[str, Any]] = None


class ResponsesSummary(CamelModel):
    sections: int
    completed_fields: int


class GenerationMetadata(CamelModel):
    template_id: str
    template_version: str
    generated_at: datetime
    responses_summary: ResponsesSummary
    context_degraded: bool = False
    snippets_used: int = 0
    snippets_dropped: int = 0


class GenerationResult(CamelModel):
    content: Union[str, Dict[str, Any]]
    metadata: GenerationMetadata


# ─── /ask and /analyze ────────────────────────────────────────────────────────

class AskRequest(CamelModel):
    question: Optional[str] = None


class AskResponse(CamelModel):
    answer: str


class AnalyzeRequest(CamelModel):
    transcript: Optional[str] = None
    customer_name: Optional[str] = None
    review_date: Optional[str] = None
    primary_contact: Optional[str] = None
    additional_considerations: Optional[str] = None
