"""
Design Review API — Main Application
FastAPI application for versioned review templates, RAG-grounded report
generation and the MongoDB knowledge assistant.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from database.database import create_engine, create_session_factory, init_models
from database.version_store import VersionStore
from embeddings import EmbeddingGenerator, QdrantManager
from generation.assistant import KnowledgeAssistant
from generation.errors import ReviewError
from generation.gpt_client import GPTClient
from generation.pipeline import GenerationPipeline
from generation.retrieval_engine import ContextRetriever, QdrantContextRetriever
from routers import assistant, generate, templates
from settings import Settings

log = logging.getLogger("review_api")

API_VERSION = "1.0.0"


def _build_retriever(settings: Settings, model: GPTClient):
    """Qdrant-backed retriever, or (None, None) when no embedding client is configured."""
    if not model.is_configured:
        log.warning("[STARTUP] OPENAI_API_KEY not set: knowledge base retrieval disabled")
        return None, None
    index = QdrantManager.connect(
        collection_name=settings.qdrant_collection,
        url=settings.qdrant_url,
        host=settings.qdrant_host,
        port=settings.qdrant_port,
    )
    embedder = EmbeddingGenerator(model.client, settings.embedding_model)
    return QdrantContextRetriever(embedder, index), index


def create_app(
    settings: Settings,
    retriever: Optional[ContextRetriever] = None,
    model: Optional[GPTClient] = None,
) -> FastAPI:
    """
    Build the application. `retriever` and `model` override the components
    built from settings (tests pass fakes here).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup: create the engine + tables, wire the components onto app.state."""
        engine = create_engine(settings.database_url)
        await init_models(engine)
        store = VersionStore(create_session_factory(engine))

        gpt = model or GPTClient.from_api_key(
            settings.openai_api_key,
            model=settings.gpt_model,
            timeout=settings.model_timeout_seconds,
        )
        index = None
        context_retriever = retriever
        if context_retriever is None:
            context_retriever, index = _build_retriever(settings, gpt)

        app.state.store = store
        app.state.pipeline = GenerationPipeline(
            store,
            context_retriever,
            gpt,
            top_k=settings.retrieval_top_k,
            max_prompt_chars=settings.prompt_max_chars,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
        )
        app.state.assistant = KnowledgeAssistant(context_retriever, gpt, top_k=settings.retrieval_top_k)
        log.info(
            f"[STARTUP] model={settings.gpt_model} configured={gpt.is_configured} "
            f"retrieval={'on' if context_retriever is not None else 'off'}"
        )
        try:
            yield
        finally:
            if index is not None:
                await index.close()
            await engine.dispose()
            log.info("[SHUTDOWN] connections closed")

    app = FastAPI(
        title="Design Review API",
        description="Versioned review templates, report generation and MongoDB knowledge assistant",
        version=API_VERSION,
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ─── Error handling ────────────────────────────────────────────────────────

    @app.exception_handler(ReviewError)
    async def review_error_handler(request: Request, exc: ReviewError):
        if exc.status_code >= 500:
            log.error(f"[{exc.error}] {request.method} {request.url.path}: {exc}")
        else:
            log.info(f"[{exc.error}] {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_payload()))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "validation_error", "details": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        log.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={"error": "internal_error", "details": "An unexpected error occurred"},
        )

    # ─── Routers ───────────────────────────────────────────────────────────────

    app.include_router(templates.router)   # /templates/*
    app.include_router(generate.router)    # /generate
    app.include_router(assistant.router)   # /ask, /analyze

    @app.get("/")
    async def root():
        return {
            "name": "Design Review API",
            "version": API_VERSION,
            "endpoints": {
                "docs": "/docs",
                "templates": "/templates",
                "generate": "/generate",
                "ask": "/ask",
                "analyze": "/analyze",
            },
        }

    return app


settings = Settings.from_env()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s  %(levelname)s  %(message)s",
)

app = create_app(settings)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
