"""
Tests for generation/assistant.py
"""

import pytest

from conftest import FakeRetriever, make_model
from generation.assistant import KnowledgeAssistant
from generation.errors import ModelOutputError, ValidationError
from generation.schemas import AnalyzeRequest


class TestAsk:
    async def test_answer_grounded_in_context(self, snippets):
        retriever = FakeRetriever(snippets)
        model = make_model("Use the bucket pattern.")
        assistant = KnowledgeAssistant(retriever, model, top_k=2)

        answer = await assistant.ask("  How should I store sensor data?  ")

        assert answer == "Use the bucket pattern."
        assert retriever.queries == [("How should I store sensor data?", 2)]
        system = model.complete.await_args.kwargs["system"]
        assert "Source: kb-1" in system
        assert "Source: kb-3" not in system

    @pytest.mark.parametrize("question", [None, "", "   "])
    async def test_question_required(self, question):
        model = make_model()
        with pytest.raises(ValidationError):
            await KnowledgeAssistant(FakeRetriever(), model).ask(question)
        model.complete.assert_not_awaited()

    async def test_retrieval_failure_still_answers(self):
        model = make_model("General advice.")
        assistant = KnowledgeAssistant(FakeRetriever(error=TimeoutError()), model)
        assert await assistant.ask("Indexes?") == "General advice."
        assert "No reference documents were found." in model.complete.await_args.kwargs["system"]

    async def test_empty_answer(self):
        with pytest.raises(ModelOutputError):
            await KnowledgeAssistant(None, make_model("")).ask("Indexes?")


class TestAnalyze:
    async def test_returns_parsed_review(self):
        model = make_model('{"title": "Acme review", "keyFindings": ["unbounded arrays"]}')
        assistant = KnowledgeAssistant(None, model)

        analysis = await assistant.analyze(
            AnalyzeRequest(transcript="We store orders with embedded items.", customer_name="Acme")
        )

        assert analysis == {"title": "Acme review", "keyFindings": ["unbounded arrays"]}
        prompt = model.complete.await_args.args[0]
        assert prompt.startswith("Customer: Acme")
        assert prompt.endswith("We store orders with embedded items.")
        assert model.complete.await_args.kwargs["json_output"] is True

    async def test_transcript_required(self):
        with pytest.raises(ValidationError):
            await KnowledgeAssistant(None, make_model()).analyze(AnalyzeRequest(transcript=" "))

    async def test_non_json_output(self):
        with pytest.raises(ModelOutputError):
            await KnowledgeAssistant(None, make_model("not json")).analyze(AnalyzeRequest(transcript="t"))
