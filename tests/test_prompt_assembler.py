"""
Tests for generation/prompt_assembler.py
Prompt layout and the size budget
"""

import pytest

from generation.errors import PromptTooLarge, ValidationError
from generation.prompt_assembler import CONTEXT_HEADER, assemble, format_fragments
from generation.schemas import PromptFragment, RetrievedSnippet


def fragment(section="Overview", label="Use case", answer="IoT", context="Assess fit."):
    return PromptFragment(section_title=section, question_label=label, answer_value=answer, prompt_context=context)


class TestLayout:
    def test_parts_in_order(self, snippets):
        result = assemble("PREAMBLE", [fragment()], snippets, "INSTRUCTIONS", max_chars=10_000)
        text = result.text

        assert text.startswith("PREAMBLE")
        assert text.endswith("INSTRUCTIONS")
        assert text.index("### Use case") < text.index(CONTEXT_HEADER) < text.index("INSTRUCTIONS")
        assert "Response: IoT" in text
        assert "[Source: kb-1 | Relevance: 0.92]" in text
        assert result.snippets_used == 3
        assert result.snippets_dropped == 0

    def test_section_heading_emitted_once_per_run(self):
        blocks = format_fragments([
            fragment(label="A"),
            fragment(label="B"),
            fragment(section="Workload", label="C"),
        ])
        assert blocks.count("## Overview") == 1
        assert blocks.count("## Workload") == 1

    def test_no_context_block_without_snippets(self):
        result = assemble("P", [fragment()], [], "I", max_chars=10_000)
        assert CONTEXT_HEADER not in result.text


class TestBudget:
    def test_drops_lowest_relevance_first(self, snippets):
        full = assemble("P", [fragment()], snippets, "I", max_chars=100_000).text
        lowest = "Shard on a high-cardinality key."

        result = assemble("P", [fragment()], snippets, "I", max_chars=len(full) - 1)

        assert len(result.text) <= len(full) - 1
        assert result.snippets_dropped == 1
        assert lowest not in result.text
        assert "Use the bucket pattern" in result.text

    def test_all_snippets_dropped_keeps_fragments(self, snippets):
        bare = assemble("P", [fragment()], [], "I", max_chars=100_000).text
        result = assemble("P", [fragment()], snippets, "I", max_chars=len(bare))

        assert result.text == bare
        assert result.snippets_used == 0
        assert result.snippets_dropped == 3

    def test_ties_drop_later_ranked_first(self):
        tied = [
            RetrievedSnippet(content="first " * 10, source_id="a", relevance_score=0.5),
            RetrievedSnippet(content="second " * 10, source_id="b", relevance_score=0.5),
        ]
        full = assemble("P", [], tied, None, max_chars=100_000).text
        result = assemble("P", [], tied, None, max_chars=len(full) - 1)
        assert "[Source: a" in result.text
        assert "[Source: b" not in result.text

    def test_fragments_alone_over_budget(self):
        with pytest.raises(PromptTooLarge) as exc_info:
            assemble("P", [fragment(answer="x" * 500)], [], "I", max_chars=100)
        assert isinstance(exc_info.value, ValidationError)
        assert exc_info.value.status_code == 400


def test_untitled_section_has_no_heading():
    blocks = format_fragments([fragment(section="", label="A")])
    assert blocks == ["### A\nResponse: IoT\nAnalysis Context:\nAssess fit."]
