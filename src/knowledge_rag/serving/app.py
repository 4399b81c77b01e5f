"""FastAPI application exposing context retrieval as a REST API."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from knowledge_rag.config import settings
from knowledge_rag.errors import ConfigurationError
from knowledge_rag.factory import build_retriever
from knowledge_rag.retrieval.retriever import ContextRetriever


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Configure logging when the server starts."""
    logging.basicConfig(level=settings.log_level)
    yield


app = FastAPI(
    title="Knowledge RAG API",
    version="0.1.0",
    description="Bounded context retrieval over the document index.",
    lifespan=lifespan,
)


@lru_cache(maxsize=1)
def get_retriever() -> ContextRetriever:
    """Build the retriever on first use; tests override this dependency."""
    return build_retriever(settings)


# ── Request / Response schemas ────────────────────────────────────────
class ContextRequest(BaseModel):
    """Question to retrieve context for."""

    question: str
    namespace: str = Field(default_factory=lambda: settings.pinecone_namespace)
    max_chars: int = Field(default_factory=lambda: settings.max_context_chars, ge=0)
    min_score: float = Field(default_factory=lambda: settings.min_score)


class ContextResponse(BaseModel):
    """Assembled context; empty when nothing relevant was found."""

    context: str
    has_context: bool


# ── Routes ────────────────────────────────────────────────────────────
@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@app.post("/context", response_model=ContextResponse)
def context(request: ContextRequest, retriever: ContextRetriever = Depends(get_retriever)) -> ContextResponse:
    """Return the context for a question."""
    text = retriever.get_context(
        request.question,
        namespace=request.namespace,
        max_chars=request.max_chars,
        min_score=request.min_score,
    )
    return ContextResponse(context=text, has_context=bool(text))


@app.exception_handler(ConfigurationError)
async def configuration_error(request: Request, exc: ConfigurationError) -> JSONResponse:
    """Missing provider configuration means the service is not ready."""
    return JSONResponse(status_code=503, content={"detail": str(exc)})
