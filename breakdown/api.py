"""
Production Breakdown API

FastAPI application exposing breakdown generation, revision and Word export.
Components are built once in the lifespan handler and shared across
requests through ``app.state``.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import structlog
from fastapi import FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field, field_validator

from .config import BreakdownConfig, get_config
from .errors import BreakdownError, ConfigError, InputError, SummarizationCallError
from .exporter import DOCX_FILENAME, DOCX_MEDIA_TYPE, DocxExporter
from .models import UploadedFile, conversation_from_dicts
from .pipeline import BreakdownPipeline, create_pipeline
from .uploads import UploadStore

logger = structlog.get_logger(__name__)


# Data Models
class BreakdownResponse(BaseModel):
    breakdown: str
    conversationHistory: List[Dict[str, Any]]


class ReviseRequest(BaseModel):
    """Validated revise request; null fields count as missing"""
    revisionRequest: str = ""
    currentBreakdown: str = ""
    conversationHistory: List[Any] = Field(default_factory=list)

    @field_validator('revisionRequest', 'currentBreakdown', mode='before')
    @classmethod
    def default_text(cls, v):
        return "" if v is None else v

    @field_validator('conversationHistory', mode='before')
    @classmethod
    def default_history(cls, v):
        return [] if v is None else v


class DownloadRequest(BaseModel):
    breakdown: str = ""

    @field_validator('breakdown', mode='before')
    @classmethod
    def default_breakdown(cls, v):
        return "" if v is None else v


class HealthStatus(BaseModel):
    status: str
    rasterizer_available: bool
    api_key_configured: bool
    extraction_backend: str


def attach_components(app: FastAPI, pipeline: BreakdownPipeline):
    """Attach shared components to the application state."""
    app.state.config = pipeline.config
    app.state.pipeline = pipeline
    app.state.upload_store = UploadStore(pipeline.config.paths.upload_dir)
    app.state.exporter = DocxExporter()


def create_app(config: Optional[BreakdownConfig] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        config: Configuration to use; loaded from file/environment when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not hasattr(app.state, 'pipeline'):
            attach_components(app, create_pipeline(config or get_config()))
        logger.info("breakdown_api_started")
        yield
        logger.info("breakdown_api_stopped")

    app = FastAPI(
        title="Production Breakdown API",
        description="Turns production briefs into structured production breakdowns",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.exception_handler(BreakdownError)
    async def breakdown_error_handler(request: Request, exc: BreakdownError):
        status = 400 if isinstance(exc, InputError) else 500
        if isinstance(exc, (ConfigError, SummarizationCallError)):
            logger.error("request_failed", path=request.url.path, error=exc.message, exc_info=exc)
        else:
            logger.warning("request_rejected", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=status, content={'error': exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning("request_invalid", path=request.url.path, fields=[error.get('loc') for error in exc.errors()])
        return JSONResponse(status_code=400, content={'error': InputError.default_message})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.error("request_crashed", path=request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={'error': 'Internal server error'})

    @app.post("/api/generate-breakdown", response_model=BreakdownResponse)
    async def generate_breakdown(request: Request, files: List[UploadFile] = File(default=[])):
        state = request.app.state
        max_files = state.config.processing.max_files
        if not files:
            raise InputError("No files uploaded")
        if len(files) > max_files:
            raise InputError(f"Too many files: at most {max_files} per request")

        stored: List[UploadedFile] = []
        try:
            for upload in files:
                stored.append(await state.upload_store.save_upload(upload))
        except Exception:
            await asyncio.to_thread(state.upload_store.discard, stored)
            raise

        logger.info("generate_requested", files=[f.original_name for f in stored])
        result = await state.pipeline.generate(stored)
        return result.to_response()

    @app.post("/api/revise-breakdown", response_model=BreakdownResponse)
    async def revise_breakdown(request: Request, body: ReviseRequest):
        if not body.revisionRequest.strip() or not body.currentBreakdown.strip():
            raise InputError("Missing required data")

        history = conversation_from_dicts(body.conversationHistory)
        result = await request.app.state.pipeline.revise(
            body.revisionRequest,
            body.currentBreakdown,
            history,
        )
        return result.to_response()

    @app.post("/api/download-docx")
    async def download_docx(request: Request, body: DownloadRequest):
        content = request.app.state.exporter.export(body.breakdown)
        return Response(
            content=content,
            media_type=DOCX_MEDIA_TYPE,
            headers={'Content-Disposition': f'attachment; filename={DOCX_FILENAME}'},
        )

    @app.get("/health", response_model=HealthStatus)
    async def health_check(request: Request):
        pipeline = request.app.state.pipeline
        rasterizer = pipeline.renderer.is_available()
        api_key = pipeline.client.is_configured
        return HealthStatus(
            status="healthy" if rasterizer and api_key else "degraded",
            rasterizer_available=rasterizer,
            api_key_configured=api_key,
            extraction_backend=pipeline.extractor.name,
        )

    return app


app = create_app()
