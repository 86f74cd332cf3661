"""
Knowledge Assistant

Free-form helpers next to the template pipeline:
  - ask:     answer an architecture question grounded in the knowledge base
  - analyze: turn a design-review call transcript into a structured JSON review
"""

import logging
from typing import Any, Dict, List, Optional

from generation.errors import ModelOutputError, ValidationError
from generation.gpt_client import GPTClient, extract_json_object
from generation.retrieval_engine import DEFAULT_TOP_K, ContextRetriever
from generation.schemas import AnalyzeRequest, RetrievedSnippet

log = logging.getLogger("generation.assistant")


ASK_SYSTEM_PROMPT = """You are a MongoDB database design and architecture expert. Analyze the user's question using the provided context from MongoDB documentation and provide a clear, detailed response.

Consider:
- Schema design and modeling best practices
- Indexing strategies
- Query patterns and performance
- Data consistency and integrity
- Scaling considerations
- Security best practices

Context from MongoDB Documentation:
{context}

Format your response in clear paragraphs. Include:
1. Direct answer to the question
2. Specific MongoDB best practices
3. Example scenarios or implementations where relevant
4. Any important caveats or considerations
5. References to official MongoDB documentation when applicable

Keep your response focused on MongoDB architecture and implementation details."""


ANALYZE_SYSTEM_PROMPT = """You are an expert MongoDB solutions architect creating a design review document from a review call transcript.

Respond with ONLY a valid JSON object, no markdown fences, using this shape:
{
  "title": "<review title>",
  "customer": "<customer name>",
  "date": "<review date>",
  "executiveSummary": "<brief overview of the design review>",
  "architectureOverview": "<current architecture as described>",
  "keyFindings": ["<finding>", ...],
  "recommendations": [
    {"title": "<short title>", "details": "<specific, actionable MongoDB recommendation>", "priority": "<high|medium|low>"}
  ],
  "nextSteps": ["<step>", ...],
  "references": ["<MongoDB documentation reference>", ...]
}

Use proper MongoDB terminology and version-specific features. Recommendations must be specific and actionable."""


def format_context(snippets: List[RetrievedSnippet]) -> str:
    """Labelled context block for the ask prompt."""
    if not snippets:
        return "No reference documents were found."
    parts = []
    for i, doc in enumerate(snippets, start=1):
        parts.append(
            f"Document {i} (Relevance: {doc.relevance_score:.2f})\n"
            f"Source: {doc.source_id or 'Unknown'}\n"
            f"Content: {doc.content}"
        )
    return "\n\n".join(parts)


class KnowledgeAssistant:
    def __init__(
        self,
        retriever: Optional[ContextRetriever],
        model: GPTClient,
        top_k: int = DEFAULT_TOP_K,
    ):
        self.retriever = retriever
        self.model = model
        self.top_k = top_k

    async def _context_for(self, question: str) -> List[RetrievedSnippet]:
        if self.retriever is None:
            return []
        try:
            return list(await self.retriever.search(question, self.top_k))[: self.top_k]
        except Exception as e:
            log.warning(f"[ASK] retrieval failed, answering without context: {type(e).__name__}: {e}")
            return []

    async def ask(self, question: Optional[str], timeout: Optional[float] = None) -> str:
        if not question or not question.strip():
            raise ValidationError(
                "Question is required",
                details="Please provide a question in the request body",
            )
        question = question.strip()
        snippets = await self._context_for(question)
        log.info(f"[ASK] question of {len(question)} chars, {len(snippets)} relevant document(s)")

        answer = await self.model.complete(
            question,
            system=ASK_SYSTEM_PROMPT.format(context=format_context(snippets)),
            temperature=0.7,
            max_tokens=1500,
            timeout=timeout,
        )
        if not answer.strip():
            raise ModelOutputError("No answer generated")
        return answer

    async def analyze(self, request: AnalyzeRequest, timeout: Optional[float] = None) -> Dict[str, Any]:
        if not request.transcript or not request.transcript.strip():
            raise ValidationError("No transcript provided", details="Request validation failed")

        header = [
            f"Customer: {request.customer_name}" if request.customer_name else None,
            f"Review date: {request.review_date}" if request.review_date else None,
            f"Primary contact: {request.primary_contact}" if request.primary_contact else None,
            f"Additional considerations: {request.additional_considerations}"
            if request.additional_considerations else None,
        ]
        details = "\n".join(line for line in header if line)
        prompt = f"{details}\n\nTranscript:\n{request.transcript.strip()}" if details else request.transcript.strip()

        raw = await self.model.complete(
            prompt,
            system=ANALYZE_SYSTEM_PROMPT,
            temperature=0.4,
            max_tokens=4000,
            json_output=True,
            timeout=timeout,
        )
        analysis = extract_json_object(raw)
        log.info(f"[ANALYZE] transcript of {len(request.transcript)} chars -> {len(analysis)} field(s)")
        return analysis
