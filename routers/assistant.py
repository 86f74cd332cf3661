"""
Knowledge assistant endpoints
POST /ask      — question answered from the reference knowledge base
POST /analyze  — review call transcript -> structured JSON review
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from generation.assistant import KnowledgeAssistant
from generation.schemas import AnalyzeRequest, AskRequest, AskResponse
from routers.dependencies import get_assistant

router = APIRouter(tags=["assistant"])


@router.post("/ask", response_model=AskResponse)
async def ask_question(request: AskRequest, assistant: KnowledgeAssistant = Depends(get_assistant)):
    answer = await assistant.ask(request.question)
    return AskResponse(answer=answer)


@router.post("/analyze", response_model=Dict[str, Any])
async def analyze_transcript(request: AnalyzeRequest, assistant: KnowledgeAssistant = Depends(get_assistant)):
    return await assistant.analyze(request)
