"""FastAPI application exposing the content service over HTTP.

The service instance is provided through the ``get_service`` dependency, built
once from :func:`~tiptap_content.config.load_config`. Tests and embedding
applications replace it with ``app.dependency_overrides[get_service]``.

Quick start (run the server)::

    uvicorn tiptap_content.run_server:app --reload

Endpoints:

    GET  /health               Basic health check
    GET  /extensions           Registered and configured extensions
    POST /stats                Character / word / paragraph / reading-time stats
    POST /text                 Plain text of a document
    POST /validate             Validate against configured + per-request rules
    POST /sanitize             Restrict a document to an extension set
    POST /html                 Document -> HTML (needs a content engine)
    POST /json                 HTML -> document (needs a content engine)
    GET  /metrics/cache        Cache analytics
    GET  /metrics/performance  Cache, validation and endpoint counters

Example::

    curl -X POST http://localhost:8000/validate \
         -H "Content-Type: application/json" \
         -d '{"document": {"type": "doc", "content": []}, "rules": {"max_depth": 3}}'

Error handling:
    * Malformed documents -> 422, unknown extensions -> 400, HTML conversion
      without an engine -> 501, all with a JSON ``error`` / ``detail`` body.
"""

from __future__ import annotations

import time
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .config import load_config
from .exceptions import EngineNotConfiguredError, MalformedDocument, UnknownExtensionError
from .extensions import available_extensions
from .monitoring import get_monitor
from .service import TiptapService

app = FastAPI(
    title="Tiptap Content API",
    version=__version__,
    description="Statistics, validation, sanitization and conversion for Tiptap rich-text documents",
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.middleware("http")
async def monitor_requests(request: Request, call_next):
    """Record request latency and expose it as a response header."""
    start_time = time.time()
    response = await call_next(request)
    response_time = time.time() - start_time

    get_monitor().record_endpoint_request(
        f"{request.method} {request.url.path}", response_time, response.status_code
    )
    response.headers["X-Response-Time"] = f"{response_time:.3f}s"
    response.headers["X-API-Version"] = __version__
    return response


class DocumentRequest(BaseModel):
    document: Dict[str, Any] = Field(..., description="Tiptap JSON document")


class RulesModel(BaseModel):
    max_length: Optional[int] = Field(None, ge=0, description="Maximum plain-text length")
    max_depth: Optional[int] = Field(None, ge=0, description="Maximum nesting depth")
    allowed_tags: Optional[List[str]] = Field(None, description="Whitelisted node types")


class ValidateRequest(DocumentRequest):
    rules: Optional[RulesModel] = Field(
        None, description="Rules merged over the configured defaults (explicit null disables a default)"
    )


class ValidateResponse(BaseModel):
    valid: bool = Field(..., description="Whether every applied rule passed")
    failed_rules: List[str] = Field(default_factory=list, description="Names of failing rules")


class StatsResponse(BaseModel):
    characters: int
    characters_no_spaces: int
    words: int
    paragraphs: int
    reading_time: int = Field(..., description="Estimated minutes at 200 words per minute")


class SanitizeRequest(DocumentRequest):
    extensions: Optional[Dict[str, Dict[str, Any]]] = Field(
        None, description="Extension name -> options; configured defaults when omitted"
    )


class HtmlRequest(SanitizeRequest):
    use_cache: bool = True


class JsonRequest(BaseModel):
    html: str
    extensions: Optional[Dict[str, Dict[str, Any]]] = None
    use_cache: bool = True


@lru_cache(maxsize=1)
def get_service() -> TiptapService:
    return TiptapService(load_config())


@app.get("/health")
def health(service: TiptapService = Depends(get_service)) -> Dict[str, Any]:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
        "cache_enabled": service.cache is not None and service.config.cache.enabled,
        "engine_configured": service.engine is not None,
    }


@app.get("/extensions")
def extensions(service: TiptapService = Depends(get_service)) -> Dict[str, Any]:
    """List registered extension names and the configured default set."""
    return {
        "available": available_extensions(),
        "configured": [ext.describe() for ext in service.config.resolved_extensions],
    }


@app.post("/stats")
def stats(request: DocumentRequest, service: TiptapService = Depends(get_service)) -> StatsResponse:
    return StatsResponse(**service.get_stats(request.document))


@app.post("/text")
def text(request: DocumentRequest, service: TiptapService = Depends(get_service)) -> Dict[str, str]:
    return {"text": service.to_text(request.document)}


@app.post("/validate")
def validate(request: ValidateRequest, service: TiptapService = Depends(get_service)) -> ValidateResponse:
    """Validate a document.

    Example::

        curl -X POST http://localhost:8000/validate \
             -H "Content-Type: application/json" \
             -d '{"document": {...}, "rules": {"allowed_tags": ["doc", "paragraph", "text"]}}'
    """
    rules = request.rules.model_dump(exclude_unset=True) if request.rules else None
    report = service.check(request.document, rules)
    return ValidateResponse(valid=report.valid, failed_rules=report.failed_rules)


@app.post("/sanitize")
def sanitize(request: SanitizeRequest, service: TiptapService = Depends(get_service)) -> Dict[str, Any]:
    return {"document": service.sanitize(request.document, request.extensions)}


@app.post("/html")
def to_html(request: HtmlRequest, service: TiptapService = Depends(get_service)) -> Dict[str, str]:
    return {"html": service.parse_json(request.document, request.extensions, use_cache=request.use_cache)}


@app.post("/json")
def to_json(request: JsonRequest, service: TiptapService = Depends(get_service)) -> Dict[str, Any]:
    return {"document": service.parse_html(request.html, request.extensions, use_cache=request.use_cache)}


@app.get("/metrics/cache")
def cache_metrics(service: TiptapService = Depends(get_service)) -> Dict[str, Any]:
    analytics = get_monitor().get_cache_analytics()
    analytics["store"] = service.cache.get_cache_stats() if service.cache is not None else None
    return analytics


@app.get("/metrics/performance")
def performance_metrics() -> Dict[str, Any]:
    return get_monitor().get_performance_summary()


def _error(status_code: int, error: str, exc: Exception, request: Request) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "detail": str(exc), "path": str(request.url.path)},
    )


@app.exception_handler(MalformedDocument)
async def malformed_document_handler(request: Request, exc: MalformedDocument):
    return _error(422, "Malformed Document", exc, request)


@app.exception_handler(UnknownExtensionError)
async def unknown_extension_handler(request: Request, exc: UnknownExtensionError):
    return _error(400, "Unknown Extension", exc, request)


@app.exception_handler(EngineNotConfiguredError)
async def engine_not_configured_handler(request: Request, exc: EngineNotConfiguredError):
    return _error(501, "Not Implemented", exc, request)


@app.exception_handler(404)
async def not_found_handler(request, exc):
    """Custom 404 handler with more helpful error messages."""
    return JSONResponse(
        status_code=404,
        content={
            "error": "Not Found",
            "detail": str(exc.detail) if hasattr(exc, "detail") else "The requested resource was not found",
            "path": str(request.url.path),
        },
    )
