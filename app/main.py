import logging
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from .core.config import settings
from .core.models import ErrorResponse
from .routers.upload import router as upload_router

logging.basicConfig(level=settings.log_level.upper())

tags_metadata = [
    {
        "name": "upload",
        "description": (
            "Upload a hero image into the configured GitHub repository.\n\n"
            "- Image is sent as a base64 data URL.\n"
            "- The image is committed as a new file; nothing is ever overwritten.\n"
            "- A shared JSON index keeps the latest image per hero name."
        ),
    }
]

app = FastAPI(
    title="Hero Image Upload Service",
    description=(
        "How to Use:\n\n"
        "1) Set GITHUB_TOKEN, GITHUB_OWNER and GITHUB_REPO (GITHUB_BRANCH defaults to `main`).\n"
        "2) POST /api/upload with `nama_pahlawan` and `data_url` (optionally `filename` and `mime`).\n"
        "3) The response carries the raw image URL and the commit URL of the index update.\n\n"
        "Notes: concurrent uploads race on the index file; a stale write is re-read and retried "
        "up to INDEX_WRITE_RETRIES times before failing with 500."
    ),
    openapi_tags=tags_metadata,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.include_router(upload_router)


@app.exception_handler(StarletteHTTPException)
async def method_not_allowed_handler(request: Request, exc: StarletteHTTPException):
    """Keep the {"error": ...} body for methods no route lists."""
    if exc.status_code == 405:
        return JSONResponse(
            status_code=405,
            content=ErrorResponse(error="Method not allowed").model_dump(),
            headers=getattr(exc, "headers", None),
        )
    return await http_exception_handler(request, exc)
