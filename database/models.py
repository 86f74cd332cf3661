"""
SQLAlchemy models for the template store

One row per template aggregate. The full version history is embedded in a
JSON column so a single read returns the whole lineage.
"""

import enum

from sqlalchemy import Column, DateTime, Integer, JSON, String, Text

from database.database import Base


class TemplateType(str, enum.Enum):
    DESIGN_REVIEW = "design-review"
    DATA_MODEL = "data-model"
    PERFORMANCE = "performance"
    MIGRATION = "migration"
    CUSTOM = "custom"


class TemplateStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ReviewTemplate(Base):
    """
    Versioned review template.

    versions: append-only list of {version, content, createdAt, createdBy, changelog}.
    current_version: must match the version of exactly one entry; it doubles as
    the compare-and-swap token for writes.
    """
    __tablename__ = "review_templates"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(String(64), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    type = Column(String(32), nullable=False, default=TemplateType.DESIGN_REVIEW.value, index=True)
    status = Column(String(16), nullable=False, default=TemplateStatus.DRAFT.value, index=True)
    tags = Column(JSON, nullable=False, default=list)
    # "metadata" is reserved on declarative classes
    extra_metadata = Column("metadata", JSON, nullable=False, default=dict)
    current_version = Column(String(64), nullable=False)
    versions = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, index=True)

    def __repr__(self):
        return f"<ReviewTemplate(template_id='{self.template_id}', current_version='{self.current_version}')>"
