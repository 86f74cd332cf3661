"""
Schema Walker

Pairs a template's section/question schema with the caller's answers and
produces the ordered prompt fragments. Output order follows the schema
declaration order only; the enumeration order of `responses` never matters.
"""

import json
from typing import Any, Dict, List, Mapping, Union

from database.schemas import TemplateContent
from generation.schemas import PromptFragment


def has_answer(value: Any) -> bool:
    """An answer counts when it is not None, not blank and not an empty collection."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) > 0
    return True


def render_answer(value: Any) -> str:
    """Render an answer as prompt text. Structured values serialize deterministically."""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple)) and all(
        isinstance(v, (str, int, float)) and not isinstance(v, bool) for v in value
    ):
        return ", ".join(str(v).strip() for v in value)
    if isinstance(value, set):
        value = sorted(value, key=str)
    return json.dumps(value, sort_keys=True, ensure_ascii=False, default=str)


def walk(
    schema: Union[TemplateContent, Mapping[str, Any], None],
    responses: Mapping[str, Any],
) -> List[PromptFragment]:
    """
    Emit one fragment per answered question that carries analysis guidance.

    Questions without an answer or without a promptContext are skipped.
    """
    if not responses or schema is None:
        return []
    content = schema if isinstance(schema, TemplateContent) else TemplateContent.model_validate(dict(schema))

    fragments: List[PromptFragment] = []
    for section in content.sections:
        for question in section.questions:
            if not question.id or question.id not in responses:
                continue
            answer = responses[question.id]
            guidance = (question.prompt_context or "").strip()
            if not has_answer(answer) or not guidance:
                continue
            fragments.append(
                PromptFragment(
                    section_title=section.title,
                    question_label=question.display_label,
                    answer_value=render_answer(answer),
                    prompt_context=guidance,
                )
            )
    return fragments


def summarize_responses(responses: Dict[str, Any]) -> Dict[str, int]:
    """Counts reported in generation metadata."""
    return {
        "sections": len(responses),
        "completed_fields": sum(1 for v in responses.values() if v),
    }
