"""
Prompt Assembler

Builds the model prompt from, in this order:
  1. global preamble
  2. one block per answered question, grouped under its section heading
  3. reference context (retrieved snippets, tagged with source + relevance)
  4. trailing analysis instructions

The result never exceeds max_chars. When it would, retrieved snippets are
dropped lowest-relevance first; answer fragments are never dropped.
"""

from typing import List, Optional, Sequence

from generation.errors import PromptTooLarge
from generation.schemas import AssembledPrompt, PromptFragment, RetrievedSnippet

BLOCK_SEPARATOR = "\n\n"
CONTEXT_HEADER = "## Reference Context"


def format_fragments(fragments: Sequence[PromptFragment]) -> List[str]:
    blocks: List[str] = []
    current_section: Optional[str] = None
    for fragment in fragments:
        if fragment.section_title != current_section:
            current_section = fragment.section_title
            if fragment.section_title:
                blocks.append(f"## {fragment.section_title}")
        blocks.append(
            f"### {fragment.question_label}\n"
            f"Response: {fragment.answer_value}\n"
            f"Analysis Context:\n{fragment.prompt_context}"
        )
    return blocks


def format_snippet(snippet: RetrievedSnippet) -> str:
    return f"[Source: {snippet.source_id} | Relevance: {snippet.relevance_score:.2f}]\n{snippet.content}"


def format_context_block(snippets: Sequence[RetrievedSnippet]) -> Optional[str]:
    if not snippets:
        return None
    return BLOCK_SEPARATOR.join([CONTEXT_HEADER] + [format_snippet(s) for s in snippets])


def _render(
    global_context: Optional[str],
    fragment_blocks: List[str],
    snippets: Sequence[RetrievedSnippet],
    analysis_template: Optional[str],
) -> str:
    parts = []
    if global_context and global_context.strip():
        parts.append(global_context.strip())
    parts.extend(fragment_blocks)
    context_block = format_context_block(snippets)
    if context_block:
        parts.append(context_block)
    if analysis_template and analysis_template.strip():
        parts.append(analysis_template.strip())
    return BLOCK_SEPARATOR.join(parts)


def assemble(
    global_context: Optional[str],
    fragments: Sequence[PromptFragment],
    retrieved_snippets: Sequence[RetrievedSnippet],
    analysis_template: Optional[str],
    max_chars: int,
) -> AssembledPrompt:
    """
    Assemble the prompt text within max_chars.

    Raises PromptTooLarge when the prompt is over budget even with every
    snippet removed.
    """
    fragment_blocks = format_fragments(fragments)

    # Drop order: lowest relevance first, later-ranked first on ties
    ranked = list(enumerate(retrieved_snippets))
    drop_order = sorted(ranked, key=lambda item: (item[1].relevance_score, -item[0]))
    dropped: set = set()

    kept = list(retrieved_snippets)
    text = _render(global_context, fragment_blocks, kept, analysis_template)
    for index, _ in drop_order:
        if len(text) <= max_chars:
            break
        dropped.add(index)
        kept = [s for i, s in ranked if i not in dropped]
        text = _render(global_context, fragment_blocks, kept, analysis_template)

    if len(text) > max_chars:
        raise PromptTooLarge(
            "Responses do not fit the prompt budget",
            details=f"Prompt needs {len(text)} characters without reference context; limit is {max_chars}",
        )

    return AssembledPrompt(text=text, snippets_used=len(kept), snippets_dropped=len(dropped))
