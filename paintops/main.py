from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

from paintops.api.middleware import AuditMiddleware
from paintops.api.v1.router import v1_router
from paintops.api.v1.websocket import router as ws_router
from paintops.common.exceptions import NotFoundError, PermissionDeniedError
from paintops.common.logging import setup_logging
from paintops.config import settings
from paintops.integrations.storage import StorageClient, verify_signature


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    Path(settings.STORAGE_LOCAL_PATH).mkdir(parents=True, exist_ok=True)
    yield


app = FastAPI(
    title="PaintOps API",
    description="Job, billing and approval backend for a painting contractor",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
origins = settings.ALLOWED_ORIGINS.split(",") if settings.ALLOWED_ORIGINS != "*" else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(AuditMiddleware)

# API routes
app.include_router(v1_router, prefix="/api/v1")
app.include_router(ws_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "paintops",
        "version": "1.0.0",
        "env": settings.APP_ENV,
    }


@app.get("/storage/{file_key:path}")
async def serve_file(file_key: str, expires: int = Query(...), signature: str = Query(...)):
    """Serve a locally stored object behind a signed, expiring URL."""
    if not verify_signature(file_key, expires, signature):
        raise PermissionDeniedError("Invalid or expired link")
    try:
        path = StorageClient().resolve(file_key)
    except ValueError:
        raise NotFoundError("File")
    if not path.is_file():
        raise NotFoundError("File")
    return FileResponse(path)
