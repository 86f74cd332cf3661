"""
FastAPI dependencies. Components are built once in the app lifespan and
stored on app.state; routes receive them through these getters.
"""

from fastapi import Request

from database.version_store import VersionStore
from generation.assistant import KnowledgeAssistant
from generation.pipeline import GenerationPipeline


def get_store(request: Request) -> VersionStore:
    return request.app.state.store


def get_pipeline(request: Request) -> GenerationPipeline:
    return request.app.state.pipeline


def get_assistant(request: Request) -> KnowledgeAssistant:
    return request.app.state.assistant
