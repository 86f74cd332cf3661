"""
Template API endpoints
Versioned review templates: list, read, create, update, history, revert, delete
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status

from database.schemas import (
    HistoryEntry,
    RevertRequest,
    TemplateAggregate,
    TemplateCreate,
    TemplateFilter,
    TemplateSummary,
    TemplateUpdate,
)
from database.version_store import VersionStore
from routers.dependencies import get_store

router = APIRouter(prefix="/templates", tags=["templates"])

log = logging.getLogger("routers.templates")

# No authentication layer yet: every write is attributed to this author
DEFAULT_AUTHOR = "system"


@router.get("", response_model=List[TemplateSummary])
async def list_templates(
    search: Optional[str] = None,
    type: Optional[str] = None,
    status: Optional[str] = None,
    tags: Optional[str] = None,
    store: VersionStore = Depends(get_store),
):
    """
    List template summaries (no version content), most recently updated first.
    `tags` is comma-separated; a template matches when it carries any of them.
    """
    tag_list = [t.strip() for t in (tags or "").split(",") if t.strip()]
    templates = await store.list(
        TemplateFilter(search=search, type=type, status=status, tags=tag_list)
    )
    log.info(f"Retrieved {len(templates)} templates")
    return templates


@router.get("/{template_id}", response_model=TemplateAggregate)
async def get_template(
    template_id: str,
    version: Optional[str] = None,
    store: VersionStore = Depends(get_store),
):
    """Full aggregate plus the normalized content of the selected (or current) version."""
    return await store.get(template_id, version)


@router.post("", response_model=TemplateAggregate, status_code=status.HTTP_201_CREATED)
async def create_template(body: TemplateCreate, store: VersionStore = Depends(get_store)):
    return await store.create(body, body.content, DEFAULT_AUTHOR)


@router.put("/{template_id}", response_model=TemplateAggregate)
async def update_template(
    template_id: str,
    body: TemplateUpdate,
    store: VersionStore = Depends(get_store),
):
    """
    Append a new version. Pass `expectedVersion` to fail with 409 when someone
    else updated the template since it was read.
    """
    return await store.update(
        template_id,
        body,
        content=body.content,
        changelog=body.changelog,
        author=DEFAULT_AUTHOR,
        expected_version=body.expected_version,
    )


@router.get("/{template_id}/history", response_model=List[HistoryEntry])
async def get_template_history(template_id: str, store: VersionStore = Depends(get_store)):
    return await store.history(template_id)


@router.post("/{template_id}/revert", response_model=TemplateAggregate)
async def revert_template(
    template_id: str,
    body: RevertRequest,
    store: VersionStore = Depends(get_store),
):
    """Make an older version's content current again by appending a copy of it."""
    return await store.revert(
        template_id,
        body.version,
        author=DEFAULT_AUTHOR,
        expected_version=body.expected_version,
    )


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(template_id: str, store: VersionStore = Depends(get_store)):
    """Administrative hard delete. Archive (status=archived) in normal flow."""
    await store.delete(template_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
