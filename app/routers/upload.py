from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from ..core.config import settings
from ..core.models import ErrorResponse, UploadResponse
from ..github.clients import contents_client
from ..github.storage import UploadService

router = APIRouter(prefix="/api", tags=["upload"])

NON_POST_METHODS = ["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE"]


def get_upload_service():
    client = contents_client(settings)
    try:
        yield UploadService(settings, client)
    finally:
        client.session.close()


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Upload a hero image",
    description=(
        "Send a JSON body with the image as a base64 data URL.\n\n"
        "Fields:\n"
        "- `nama_pahlawan` (required): the hero's name; one image is kept per name (case-insensitive).\n"
        "- `data_url` (required): `data:<mime>;base64,<payload>`.\n"
        "- `mime` (optional): overrides the data URL's MIME when picking the file extension.\n"
        "- `filename` (optional): its extension is used when the MIME is not recognised.\n\n"
        "The image is committed under `images/` and the index JSON is updated in the same repo."
    ),
)
async def upload(request: Request, service: UploadService = Depends(get_upload_service)):
    try:
        payload = await request.json()
    except ValueError:
        payload = None
    # GitHub round trips are blocking; keep them off the event loop.
    result = await run_in_threadpool(service.handle, payload)
    return JSONResponse(status_code=result.status_code, content=result.body)


@router.api_route("/upload", methods=NON_POST_METHODS, include_in_schema=False)
def upload_method_not_allowed():
    return JSONResponse(
        status_code=405,
        content=ErrorResponse(error="Method not allowed").model_dump(),
        headers={"Allow": "POST"},
    )
