"""
Versioned template store

All template reads and writes go through VersionStore. A template is one
aggregate row whose `versions` list only ever grows. Writes are guarded by a
compare-and-swap on `current_version`: the UPDATE only matches when the row
still carries the version the writer read, so two writers racing from the
same state cannot both advance it.
"""

import copy
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.models import ReviewTemplate
from database.schemas import (
    HistoryEntry,
    TemplateAggregate,
    TemplateContent,
    TemplateFilter,
    TemplateMeta,
    TemplateMetaUpdate,
    TemplateSummary,
    TemplateVersion,
)
from database.versioning import INITIAL_VERSION, next_version, normalize_content, parse_version
from generation.errors import Conflict, NotFound, ServiceUnavailable, ValidationError, VersionNotFound

log = logging.getLogger("database.version_store")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clean_tags(tags) -> List[str]:
    cleaned = (t.strip() for t in tags or [] if isinstance(t, str))
    return list(dict.fromkeys(t for t in cleaned if t))


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _version_entry(version: str, content: Dict[str, Any], author: str, changelog: str, created_at: datetime) -> dict:
    return {
        "version": version,
        "content": content,
        "createdAt": created_at.isoformat(),
        "createdBy": author,
        "changelog": changelog,
    }


def _snapshot(row: ReviewTemplate) -> dict:
    return {
        "template_id": row.template_id,
        "name": row.name,
        "description": row.description,
        "type": row.type,
        "status": row.status,
        "tags": list(row.tags or []),
        "metadata": dict(row.extra_metadata or {}),
        "current_version": row.current_version,
        "versions": list(row.versions or []),
        "created_at": row.created_at,
        "updated_at": row.updated_at,
    }


def _to_aggregate(snapshot: dict) -> TemplateAggregate:
    """Aggregate with the current version resolved, as `get` returns it by default."""
    data = dict(snapshot)
    data["versions"] = [TemplateVersion.model_validate(v) for v in snapshot["versions"]]
    aggregate = TemplateAggregate(**data)
    current = aggregate.find_version(aggregate.current_version)
    if current is not None:
        aggregate.resolved_version = current.version
        aggregate.current_content = normalize_content(current.content)
    return aggregate


def _checked_content(content: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Normalized content, rejected with ValidationError when its schema shape is wrong."""
    if content is not None and not isinstance(content, dict):
        raise ValidationError("Invalid template content", details="Content must be an object")
    normalized = normalize_content(content)
    try:
        TemplateContent.model_validate(normalized)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid template content",
            details=e.errors(include_url=False, include_context=False),
        ) from e
    return normalized


def _to_summary(row: ReviewTemplate) -> TemplateSummary:
    return TemplateSummary(
        template_id=row.template_id,
        name=row.name,
        description=row.description,
        type=row.type,
        status=row.status,
        tags=list(row.tags or []),
        metadata=dict(row.extra_metadata or {}),
        current_version=row.current_version,
        version_count=len(row.versions or []),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _find_entry(versions: List[dict], version: str) -> Optional[dict]:
    for entry in versions:
        if entry.get("version") == version:
            return entry
    return None


class VersionStore:
    """Async, append-only store of template aggregates."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._session_factory = session_factory
        self._clock = clock

    @asynccontextmanager
    async def _session(self):
        try:
            async with self._session_factory() as session:
                yield session
        except (OperationalError, InterfaceError, OSError) as e:
            log.error(f"[STORE] database unavailable: {e}")
            raise ServiceUnavailable("Template store is unavailable", details=str(e)) from e

    async def _load(self, session: AsyncSession, template_id: str) -> ReviewTemplate:
        result = await session.execute(
            select(ReviewTemplate).where(ReviewTemplate.template_id == template_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFound(f"Template {template_id} not found")
        return row

    async def _compare_and_swap(
        self,
        session: AsyncSession,
        template_id: str,
        observed_version: str,
        values: dict,
    ) -> None:
        stmt = (
            update(ReviewTemplate)
            .where(
                ReviewTemplate.template_id == template_id,
                ReviewTemplate.current_version == observed_version,
            )
            .values({getattr(ReviewTemplate, key): value for key, value in values.items()})
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        if result.rowcount != 1:
            await session.rollback()
            log.warning(f"[STORE] conflict on {template_id}: {observed_version} is no longer current")
            raise Conflict(
                f"Template {template_id} was modified after version {observed_version} was read",
                details={"templateId": template_id, "observedVersion": observed_version},
            )
        await session.commit()

    @staticmethod
    def _check_expected(template_id: str, observed: str, expected: Optional[str]) -> None:
        if expected is not None and expected != observed:
            raise Conflict(
                f"Template {template_id} is at version {observed}, not {expected}",
                details={"templateId": template_id, "currentVersion": observed, "expectedVersion": expected},
            )

    # ─── Writes ──────────────────────────────────────────────────────────────

    async def create(
        self,
        meta: TemplateMeta,
        content: Optional[Dict[str, Any]] = None,
        author: str = "system",
    ) -> TemplateAggregate:
        """Create a template with a single 1.0.0 version."""
        name = (meta.name or "").strip()
        description = (meta.description or "").strip()
        missing = [field for field, value in (("name", name), ("description", description)) if not value]
        if missing:
            raise ValidationError("Missing required fields", details=f"Required: {', '.join(missing)}")
        checked = _checked_content(content)

        now = self._clock()
        template_id = f"template-{uuid4().hex[:12]}"
        versions = [
            _version_entry(INITIAL_VERSION, checked, author, "Initial version", now)
        ]
        row = ReviewTemplate(
            template_id=template_id,
            name=name,
            description=description,
            type=meta.type.value,
            status=meta.status.value,
            tags=_clean_tags(meta.tags),
            extra_metadata=dict(meta.metadata or {}),
            current_version=INITIAL_VERSION,
            versions=versions,
            created_at=now,
            updated_at=now,
        )
        async with self._session() as session:
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise Conflict(f"Template id {template_id} already exists") from e
            snapshot = _snapshot(row)

        log.info(f"[STORE] created {template_id} '{name}' v{INITIAL_VERSION}")
        return _to_aggregate(snapshot)

    async def update(
        self,
        template_id: str,
        meta: TemplateMetaUpdate,
        content: Optional[Dict[str, Any]] = None,
        changelog: Optional[str] = None,
        author: str = "system",
        expected_version: Optional[str] = None,
    ) -> TemplateAggregate:
        """
        Append a new version (minor bump) and apply the metadata patch.

        content=None carries the current content forward. A concurrent write
        that lands first makes this call fail with Conflict.
        """
        for field in ("name", "description"):
            value = getattr(meta, field)
            if value is not None and not value.strip():
                raise ValidationError(f"Field '{field}' cannot be empty")

        checked = _checked_content(content) if content is not None else None

        async with self._session() as session:
            row = await self._load(session, template_id)
            snapshot = _snapshot(row)
            observed = snapshot["current_version"]
            self._check_expected(template_id, observed, expected_version)

            if content is None:
                current = _find_entry(snapshot["versions"], observed) or {}
                new_content = copy.deepcopy(current.get("content") or {})
            else:
                new_content = checked

            now = self._clock()
            new_version = next_version(observed)
            entry = _version_entry(
                new_version,
                new_content,
                author,
                changelog or f"Updated to version {new_version}",
                now,
            )
            values = {
                "current_version": new_version,
                "versions": snapshot["versions"] + [entry],
                "updated_at": now,
            }
            if meta.name is not None:
                values["name"] = meta.name.strip()
            if meta.description is not None:
                values["description"] = meta.description.strip()
            if meta.type is not None:
                values["type"] = meta.type.value
            if meta.status is not None:
                values["status"] = meta.status.value
            if meta.tags is not None:
                values["tags"] = _clean_tags(meta.tags)
            if meta.metadata is not None:
                values["extra_metadata"] = dict(meta.metadata)

            await self._compare_and_swap(session, template_id, observed, values)

        log.info(f"[STORE] updated {template_id}: {observed} -> {new_version}")
        snapshot.update(values)
        snapshot["metadata"] = snapshot.pop("extra_metadata", snapshot["metadata"])
        return _to_aggregate(snapshot)

    async def revert(
        self,
        template_id: str,
        target_version: str,
        author: str = "system",
        expected_version: Optional[str] = None,
    ) -> TemplateAggregate:
        """Append a new version whose content is a copy of target_version's."""
        async with self._session() as session:
            row = await self._load(session, template_id)
            snapshot = _snapshot(row)
            target = _find_entry(snapshot["versions"], target_version)
            if target is None:
                raise VersionNotFound(f"Version {target_version} not found for template {template_id}")
            observed = snapshot["current_version"]
            self._check_expected(template_id, observed, expected_version)

            now = self._clock()
            new_version = next_version(observed)
            entry = _version_entry(
                new_version,
                copy.deepcopy(target.get("content") or {}),
                author,
                f"Reverted to version {target_version}",
                now,
            )
            values = {
                "current_version": new_version,
                "versions": snapshot["versions"] + [entry],
                "updated_at": now,
            }
            await self._compare_and_swap(session, template_id, observed, values)

        log.info(f"[STORE] reverted {template_id} to {target_version} as {new_version}")
        snapshot.update(values)
        return _to_aggregate(snapshot)

    async def delete(self, template_id: str) -> None:
        """Administrative hard delete of the whole aggregate."""
        async with self._session() as session:
            result = await session.execute(
                delete(ReviewTemplate).where(ReviewTemplate.template_id == template_id)
            )
            if result.rowcount == 0:
                await session.rollback()
                raise NotFound(f"Template {template_id} not found")
            await session.commit()
        log.info(f"[STORE] deleted {template_id}")

    # ─── Reads ───────────────────────────────────────────────────────────────

    async def get(self, template_id: str, version: Optional[str] = None) -> TemplateAggregate:
        """
        Load a template and resolve one version (current by default).

        The resolved content is normalized so `sections` and every section's
        `questions` are always lists.
        """
        async with self._session() as session:
            row = await self._load(session, template_id)
            snapshot = _snapshot(row)

        aggregate = _to_aggregate(snapshot)
        wanted = version or aggregate.current_version
        entry = aggregate.find_version(wanted)
        if entry is None:
            if version:
                raise VersionNotFound(f"Version {version} not found for template {template_id}")
            raise NotFound(f"Current version {wanted} of template {template_id} is missing")
        aggregate.resolved_version = entry.version
        aggregate.current_content = normalize_content(entry.content)
        return aggregate

    async def list(self, filters: Optional[TemplateFilter] = None) -> List[TemplateSummary]:
        """Summaries matching the filter, most recently updated first."""
        filters = filters or TemplateFilter()
        stmt = select(ReviewTemplate)
        if filters.status:
            stmt = stmt.where(ReviewTemplate.status == filters.status)
        if filters.type:
            stmt = stmt.where(ReviewTemplate.type == filters.type)
        if filters.search and filters.search.strip():
            pattern = f"%{_escape_like(filters.search.strip())}%"
            stmt = stmt.where(
                or_(
                    ReviewTemplate.name.ilike(pattern, escape="\\"),
                    ReviewTemplate.description.ilike(pattern, escape="\\"),
                )
            )
        stmt = stmt.order_by(ReviewTemplate.updated_at.desc(), ReviewTemplate.id.desc())

        async with self._session() as session:
            rows = (await session.execute(stmt)).scalars().all()

        wanted_tags = set(_clean_tags(filters.tags))
        return [
            _to_summary(row)
            for row in rows
            if not wanted_tags or wanted_tags & set(row.tags or [])
        ]

    async def history(self, template_id: str) -> List[HistoryEntry]:
        """Version history, newest first by semantic version."""
        async with self._session() as session:
            row = await self._load(session, template_id)
            versions = list(row.versions or [])

        entries = [HistoryEntry.model_validate(v) for v in versions]
        return sorted(entries, key=lambda e: parse_version(e.version), reverse=True)
