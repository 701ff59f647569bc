"""Content store - FastAPI service."""

from __future__ import annotations

import asyncio
import contextlib

import structlog
from fastapi import APIRouter, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from modules.content_store.blob_store import create_blob_store
from modules.content_store.bootstrap import ensure_ready
from modules.content_store.errors import ContentStoreError
from modules.content_store.expiration import ExpirationPolicy
from modules.content_store.ingestor import DEFAULT_MIME_TYPE, ContentIngestor, Upload
from modules.content_store.metadata_store import MetadataStore, RedisMetadataStore, SqlMetadataStore
from modules.content_store.models import CreateResponse, FileView, TextView
from modules.content_store.reaper import reaper_loop
from modules.content_store.records import TEXT, classify_mime
from modules.content_store.retriever import ContentRetriever
from shared.config import Settings, get_settings
from shared.database import dispose_engine, get_session_factory
from shared.redis import close_redis, get_redis
from shared.schemas.common import ErrorResponse, HealthResponse

structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
)

logger = structlog.get_logger()
app = FastAPI(title="Content Store", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

settings = get_settings()
router = APIRouter(prefix=settings.api_prefix, tags=["content"])

ingestor: ContentIngestor | None = None
retriever: ContentRetriever | None = None
_reaper_task: asyncio.Task | None = None


async def build_metadata_store(settings: Settings) -> MetadataStore:
    """Pick the metadata backend named in settings."""
    if settings.metadata_backend == "redis":
        return RedisMetadataStore(await get_redis())
    if settings.metadata_backend == "sql":
        return SqlMetadataStore(get_session_factory())
    raise ValueError(f"Unknown metadata backend: {settings.metadata_backend!r}")


@app.on_event("startup")
async def startup():
    global ingestor, retriever, _reaper_task
    metadata = await build_metadata_store(settings)
    blobs = create_blob_store(settings)
    policy = ExpirationPolicy(settings.content_ttl)

    if not await ensure_ready(blobs):
        logger.warning("content_store_degraded", reason="file uploads unavailable")

    ingestor = ContentIngestor(metadata, blobs, policy, settings.max_inline_bytes)
    retriever = ContentRetriever(
        metadata, blobs, policy, full_ttl_handles=settings.handle_full_ttl
    )

    if settings.reaper_enabled:
        if settings.metadata_backend == "sql":
            _reaper_task = asyncio.create_task(
                reaper_loop(
                    get_session_factory(),
                    metadata,
                    blobs,
                    settings.reaper_interval_seconds,
                    settings.reaper_batch_size,
                )
            )
        else:
            logger.warning("reaper_disabled", reason="requires sql metadata backend")

    logger.info(
        "content_store_ready",
        metadata_backend=settings.metadata_backend,
        ttl_hours=settings.content_ttl_hours,
    )


@app.on_event("shutdown")
async def shutdown():
    global _reaper_task
    if _reaper_task is not None:
        _reaper_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await _reaper_task
        _reaper_task = None
    await close_redis()
    await dispose_engine()


@app.exception_handler(ContentStoreError)
async def content_store_error_handler(request: Request, exc: ContentStoreError):
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.message).model_dump(),
    )


@router.post("/upload", response_model=CreateResponse)
async def upload(
    kind: str | None = Form(None, alias="type"),
    content: str | None = Form(None),
    file: UploadFile | None = File(None),
) -> CreateResponse:
    """Store text or a file and return its identifier.

    For file uploads ``type`` may be left out; it is then derived from the
    file's MIME type.
    """
    if ingestor is None:
        raise HTTPException(503, "Service not ready")

    if file is None and kind in (None, TEXT):
        kind = TEXT
    elif kind is None:
        kind = classify_mime(file.content_type)

    if kind == TEXT:
        payload = content
    elif file is None:
        payload = None
    else:
        # One byte past the ceiling is enough to reject oversized uploads
        data = await file.read(ingestor.blobs.max_object_bytes + 1)
        payload = Upload(
            data=data,
            name=file.filename or "",
            mime_type=file.content_type or DEFAULT_MIME_TYPE,
        )

    content_id = await ingestor.ingest(kind, payload)
    return CreateResponse(id=content_id, kind=kind)


@router.get("/content/{content_id}", response_model=TextView | FileView)
async def get_content(content_id: str) -> TextView | FileView:
    """Fetch shared content. 404 if unknown, 410 once expired."""
    if retriever is None:
        raise HTTPException(503, "Service not ready")
    return await retriever.retrieve(content_id)


app.include_router(router)


@app.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="ok")
