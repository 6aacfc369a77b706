from datetime import datetime, timezone
from typing import Any, Callable, Dict, List
import base64
import binascii
import logging
import posixpath
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from ..core.config import Settings
from ..core.errors import ConfigurationError, InvalidInput, UploadError, VersionConflict
from ..core.identifiers import derive_extension, image_path, parse_data_url, unique_suffix
from ..core.models import ErrorResponse, IndexRecord, UploadRequest, UploadResponse
from .contents import ContentsClient
from .index import dump_index, load_index_or_default, upsert_record

"""Upload pipeline: commit the image, then fold it into the shared index.
"""

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class UploadContext(BaseModel):
    """State threaded through the pipeline stages."""
    request: UploadRequest
    mime: str = ""
    payload: bytes = b""
    image_path: str = ""
    image_url: str = ""
    commit: Dict[str, Any] = Field(default_factory=dict)


class UploadResult(BaseModel):
    """Tagged outcome of one upload: the HTTP status plus the JSON body."""
    model_config = ConfigDict(frozen=True)

    status_code: int
    body: Dict[str, Any]

    @property
    def ok(self) -> bool:
        return self.status_code == 200


class UploadService:
    """Runs one upload against the configured repository.

    Stages run in order and the first failure aborts the rest. Nothing is
    rolled back: if the index write fails, the image commit stays orphaned.
    """

    def __init__(
        self,
        cfg: Settings,
        client: ContentsClient,
        now: Callable[[], str] = _utc_now_iso,
        suffix: Callable[[], str] = unique_suffix,
    ):
        self.cfg = cfg
        self.client = client
        self._now = now
        self._suffix = suffix

    @property
    def stages(self) -> List[Callable[[UploadContext], None]]:
        return [
            self._validate_request,
            self._validate_config,
            self._decode_image,
            self._store_image,
            self._update_index,
        ]

    def upload(self, request: UploadRequest) -> UploadResponse:
        ctx = UploadContext(request=request)
        for stage in self.stages:
            stage(ctx)
        return UploadResponse(
            nama_pahlawan=request.nama_pahlawan,
            image_url=ctx.image_url,
            json_path=self.cfg.index_path,
            commit_url=(ctx.commit.get("commit") or {}).get("html_url") or None,
        )

    def handle(self, payload: Any) -> UploadResult:
        """Entry point for an already-parsed request body."""
        try:
            if not isinstance(payload, dict):
                raise InvalidInput("request body must be a JSON object")
            try:
                request = UploadRequest.model_validate(payload)
            except ValidationError as e:
                raise InvalidInput(f"invalid request: {e.errors()[0]['msg']}")
            response = self.upload(request)
        except UploadError as e:
            level = logging.WARNING if e.status_code < 500 else logging.ERROR
            logger.log(level, "upload failed (%s): %s", e.status_code, e)
            return UploadResult(status_code=e.status_code, body=ErrorResponse(error=str(e)).model_dump())
        except Exception as e:
            logger.exception("upload failed unexpectedly")
            return UploadResult(status_code=500, body=ErrorResponse(error=str(e) or repr(e)).model_dump())
        return UploadResult(status_code=200, body=response.model_dump())

    # Stages

    def _validate_request(self, ctx: UploadContext) -> None:
        if not ctx.request.nama_pahlawan or not ctx.request.data_url:
            raise InvalidInput("nama_pahlawan and data_url are required")

    def _validate_config(self, ctx: UploadContext) -> None:
        missing = self.cfg.missing()
        if missing:
            raise ConfigurationError(
                f"Incomplete configuration, missing: {', '.join(missing)} (GITHUB_BRANCH is optional)"
            )

    def _decode_image(self, ctx: UploadContext) -> None:
        ctx.mime, b64 = parse_data_url(ctx.request.data_url)
        try:
            ctx.payload = base64.b64decode(b64, validate=True)
        except (binascii.Error, ValueError):
            raise InvalidInput("data_url payload is not valid base64")

    def _store_image(self, ctx: UploadContext) -> None:
        req = ctx.request
        ext = derive_extension(req.mime or ctx.mime, req.filename)
        ctx.image_path = image_path(self.cfg.image_dir, req.nama_pahlawan, ext, self._suffix())
        self.client.put_file(
            ctx.image_path,
            ctx.payload,
            f"Upload image pahlawan: {req.nama_pahlawan}",
        )
        ctx.image_url = "/".join(
            [
                self.cfg.github_raw_url.rstrip("/"),
                self.cfg.github_owner,
                self.cfg.github_repo,
                self.cfg.github_branch,
                ctx.image_path,
            ]
        )

    def _update_index(self, ctx: UploadContext) -> None:
        """Read-reconcile-write the index, re-reading on a stale sha."""
        record = IndexRecord(
            nama_pahlawan=ctx.request.nama_pahlawan,
            image_url=ctx.image_url,
            uploaded_at=self._now(),
        ).model_dump()
        path = self.cfg.index_path
        attempts = 1 + max(0, self.cfg.index_write_retries)
        for attempt in range(1, attempts + 1):
            snapshot = load_index_or_default(self.client, path)
            records = upsert_record(snapshot.records, record)
            try:
                ctx.commit = self.client.put_file(
                    path,
                    dump_index(records),
                    f"Update {posixpath.basename(path)}: {ctx.request.nama_pahlawan}",
                    snapshot.version,
                )
                return
            except VersionConflict as e:
                if attempt == attempts:
                    logger.error(
                        "index %s still conflicting after %d attempt(s); %s is orphaned",
                        path, attempts, ctx.image_path,
                    )
                    raise
                logger.warning("index %s changed underneath us (%s), retrying", path, e.message)
