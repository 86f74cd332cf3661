"""
Report Generation Pipeline

Steps:
1. Validate   — responses must be a non-empty mapping (before any I/O)
2. Resolve    — template version from the VersionStore
3. Query      — retrieval query from the salient answers
4. Retrieve   — top-k reference snippets; failure only degrades the context
5. Assemble   — SchemaWalker fragments + snippets within the prompt budget
6. Generate   — one model call, bounded by a timeout, never retried here
7. Parse      — JSON-declared templates must yield a JSON object
8. Metadata   — template id/version, timestamp, answer counts, context flags

The pipeline never writes to the store, so a cancelled or failed request
cannot leave a template half-updated.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, List, Mapping, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from database.schemas import TemplateContent
from database.version_store import VersionStore
from generation.errors import ModelOutputError, ValidationError
from generation.gpt_client import GPTClient, extract_json_object
from generation.prompt_assembler import assemble
from generation.retrieval_engine import DEFAULT_TOP_K, ContextRetriever, build_retrieval_query
from generation.schema_walker import summarize_responses, walk
from generation.schemas import (
    GenerationMetadata,
    GenerationResult,
    ResponsesSummary,
    RetrievedSnippet,
)

log = logging.getLogger("generation.pipeline")


# ─── Prompt defaults ───────────────────────────────────────────────────────────

SYSTEM_ROLE = "You are a MongoDB Solutions Architect specializing in application design reviews."

JSON_SYSTEM_SUFFIX = "Respond with ONLY a valid JSON object, no markdown, no explanation."

DEFAULT_PREAMBLE = """You are a MongoDB Solutions Architect analyzing a new application design.
Please review the following responses and generate a comprehensive analysis report."""

DEFAULT_ANALYSIS_TEMPLATE = """Format the response in markdown with clear sections:

1. Executive Summary
2. Architecture Overview
3. Design Analysis
   - Schema Design
   - Query Patterns
   - Indexing Strategy
4. Recommendations
5. Next Steps

Use markdown formatting for better readability."""

DEFAULT_MAX_PROMPT_CHARS = 24000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GenerationPipeline:
    """Turns a template + responses into a generated review document."""

    def __init__(
        self,
        store: VersionStore,
        retriever: Optional[ContextRetriever],
        model: GPTClient,
        top_k: int = DEFAULT_TOP_K,
        max_prompt_chars: int = DEFAULT_MAX_PROMPT_CHARS,
        temperature: float = 0.7,
        max_tokens: int = 4000,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.retriever = retriever
        self.model = model
        self.top_k = top_k
        self.max_prompt_chars = max_prompt_chars
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._clock = clock

    async def _retrieve(self, query: str) -> Tuple[List[RetrievedSnippet], bool]:
        """Returns (snippets, degraded). Retrieval failures never fail the request."""
        if not query:
            return [], False
        if self.retriever is None:
            log.warning("[GENERATE] no knowledge base configured, continuing without context")
            return [], True
        try:
            snippets = await self.retriever.search(query, self.top_k)
        except Exception as e:
            log.warning(f"[GENERATE] retrieval failed, continuing without context: {type(e).__name__}: {e}")
            return [], True
        return list(snippets)[: self.top_k], False

    async def generate(
        self,
        template_id: Optional[str],
        responses: Optional[Mapping[str, Any]],
        version: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> GenerationResult:
        """
        Generate a report for a template version.

        Raises:
            ValidationError:    missing template id or empty responses
            NotFound / VersionNotFound: from the store, unchanged
            ModelTimeout / ServiceUnavailable / ModelServiceError: from the model call
            ModelOutputError:   empty output, or unparseable output for JSON templates
        """
        if not isinstance(responses, Mapping) or not responses:
            raise ValidationError(
                "Missing required data",
                details="Responses are required and cannot be empty",
            )
        if not template_id:
            raise ValidationError("Missing required data", details="Template ID is required")

        template = await self.store.get(template_id, version)
        try:
            content = TemplateContent.model_validate(template.current_content or {})
        except PydanticValidationError as e:
            # rows written before content shapes were checked on write
            raise ValidationError(
                f"Template {template_id} v{template.resolved_version} has malformed content",
                details=e.errors(include_url=False, include_context=False),
            ) from e
        log.info(
            f"[GENERATE] template={template_id} v{template.resolved_version} "
            f"responses={len(responses)}"
        )

        query = build_retrieval_query(responses)
        snippets, degraded = await self._retrieve(query)

        fragments = walk(content, responses)
        prompt = assemble(
            content.global_prompt_context or DEFAULT_PREAMBLE,
            fragments,
            snippets,
            content.analysis_prompt_template or DEFAULT_ANALYSIS_TEMPLATE,
            self.max_prompt_chars,
        )
        log.info(
            f"[GENERATE] prompt={len(prompt.text)} chars, fragments={len(fragments)}, "
            f"snippets={prompt.snippets_used} (dropped {prompt.snippets_dropped}), degraded={degraded}"
        )

        json_output = (content.output_format or "").lower() == "json"
        system = f"{SYSTEM_ROLE} {JSON_SYSTEM_SUFFIX}" if json_output else SYSTEM_ROLE
        raw = await self.model.complete(
            prompt.text,
            system=system,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            json_output=json_output,
            timeout=timeout,
        )
        if not raw.strip():
            raise ModelOutputError("No content in model response")
        generated = extract_json_object(raw) if json_output else raw

        counts = summarize_responses(dict(responses))
        log.info(f"[GENERATE] OK template={template_id}, output={len(raw)} chars")
        return GenerationResult(
            content=generated,
            metadata=GenerationMetadata(
                template_id=template.template_id,
                template_version=template.resolved_version,
                generated_at=self._clock(),
                responses_summary=ResponsesSummary(**counts),
                context_degraded=degraded,
                snippets_used=prompt.snippets_used,
                snippets_dropped=prompt.snippets_dropped,
            ),
        )
