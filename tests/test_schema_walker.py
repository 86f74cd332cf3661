"""
Tests for generation/schema_walker.py
"""

import pytest

from database.schemas import TemplateContent
from generation.schema_walker import has_answer, render_answer, summarize_responses, walk


class TestWalk:
    def test_fragments_follow_schema_order(self, sample_content, sample_responses):
        fragments = walk(TemplateContent.model_validate(sample_content), sample_responses)

        assert [f.question_label for f in fragments] == ["Primary use case", "Read/write ratio", "Data volume"]
        assert [f.section_title for f in fragments] == ["Overview", "Workload", "Workload"]
        assert fragments[2].answer_value == "500"
        assert fragments[0].prompt_context == "Assess whether the use case suits a document model."

    def test_response_order_does_not_matter(self, sample_content, sample_responses):
        reversed_responses = dict(reversed(list(sample_responses.items())))
        assert walk(sample_content, sample_responses) == walk(sample_content, reversed_responses)

    def test_empty_responses(self, sample_content):
        assert walk(sample_content, {}) == []

    def test_question_without_prompt_context_is_skipped(self, sample_content):
        # customer-name has no promptContext
        assert walk(sample_content, {"customer-name": "Acme"}) == []

    @pytest.mark.parametrize("blank", [None, "", "   ", [], {}])
    def test_blank_answers_are_skipped(self, sample_content, blank):
        assert walk(sample_content, {"use-case": blank}) == []

    def test_unknown_response_keys_are_ignored(self, sample_content):
        fragments = walk(sample_content, {"unknown": "x", "use-case": "Catalog"})
        assert len(fragments) == 1

    def test_label_falls_back_to_question_text(self):
        schema = {
            "sections": [
                {
                    "title": "S",
                    "questions": [{"id": "q1", "question": "What is stored?", "promptContext": "ctx"}],
                }
            ]
        }
        fragments = walk(schema, {"q1": "orders"})
        assert fragments[0].question_label == "What is stored?"

    def test_schema_without_sections(self):
        assert walk({}, {"a": "b"}) == []


class TestRenderAnswer:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("  text  ", "text"),
            (True, "Yes"),
            (False, "No"),
            (42, "42"),
            (1.5, "1.5"),
            (["a", "b", 3], "a, b, 3"),
        ],
    )
    def test_scalars(self, value, expected):
        assert render_answer(value) == expected

    def test_structured_values_are_deterministic(self):
        a = render_answer({"b": 1, "a": [{"y": 2, "x": 1}]})
        b = render_answer({"a": [{"x": 1, "y": 2}], "b": 1})
        assert a == b == '{"a": [{"x": 1, "y": 2}], "b": 1}'


class TestHasAnswer:
    @pytest.mark.parametrize("value", [0, False, "x", ["x"], {"k": "v"}])
    def test_present(self, value):
        assert has_answer(value)

    @pytest.mark.parametrize("value", [None, "", "  ", [], {}])
    def test_absent(self, value):
        assert not has_answer(value)


def test_summarize_responses(sample_responses):
    summary = summarize_responses({**sample_responses, "empty": ""})
    assert summary == {"sections": 5, "completed_fields": 4}


class TestLooseSchemas:
    def test_numeric_question_ids_match_string_keys(self):
        schema = {"sections": [{"title": None, "questions": [{"id": 3, "label": "Volume", "promptContext": "ctx"}]}]}
        fragments = walk(schema, {"3": "1 TB"})
        assert [(f.section_title, f.question_label, f.answer_value) for f in fragments] == [("", "Volume", "1 TB")]

    def test_null_optional_fields_use_defaults(self):
        content = TemplateContent.model_validate(
            {"sections": [{"title": "S", "questions": [{"id": "q", "type": None, "required": None, "options": None}]}], "outputFormat": None}
        )
        question = content.sections[0].questions[0]
        assert (question.type, question.required, question.options) == ("text", False, [])
        assert content.output_format == "markdown"
