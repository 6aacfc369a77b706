from typing import Any, Dict, Optional
from urllib.parse import quote
import base64
import json
import logging
import requests
from pydantic import BaseModel, ConfigDict
from ..core.errors import NotFound, RemoteError, VersionConflict

"""Thin client over the GitHub Contents API (read file, write file by sha)."""

logger = logging.getLogger(__name__)


class VersionToken(BaseModel):
    """Blob sha proving which revision of a file a write is based on."""
    model_config = ConfigDict(frozen=True)

    sha: str

    def __str__(self) -> str:
        return self.sha


class RemoteFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    content: bytes
    version: VersionToken


def _decode_body(resp) -> Dict[str, Any]:
    text = resp.text or ""
    if not text:
        return {}
    try:
        data = json.loads(text)
    except ValueError:
        return {"raw": text}
    return data if isinstance(data, dict) else {"data": data}


def _translate_error(resp, data: Dict[str, Any]) -> RemoteError:
    """Map a non-success response onto our single remote failure shape."""
    status = resp.status_code
    message = str(data.get("message") or f"HTTP {status}")
    if status == 404:
        return NotFound(message, status)
    # 409: sha does not match. 422: sha wasn't supplied for an existing file.
    if status == 409 or (status == 422 and "sha" in message.lower()):
        return VersionConflict(message, status)
    return RemoteError(message, status)


class ContentsClient:
    """Path-addressed file access for one repo and branch."""

    def __init__(
        self,
        session: requests.Session,
        *,
        owner: str,
        repo: str,
        branch: str = "main",
        api_url: str = "https://api.github.com",
        timeout: Optional[float] = None,
    ):
        self.session = session
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.api_url}/repos/{self.owner}/{self.repo}/contents/{quote(path, safe='/')}"

    def _call(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            resp = getattr(self.session, method)(self._url(path), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise RemoteError(str(e)) from e
        data = _decode_body(resp)
        if not 200 <= resp.status_code < 300:
            raise _translate_error(resp, data)
        return data

    def get_file(self, path: str) -> RemoteFile:
        """Fetch a file and its sha.

        Raises NotFound when the path is absent, and RemoteError when GitHub
        does not inline the content (files over 1 MB).
        """
        data = self._call("get", path, params={"ref": self.branch})
        # Files over 1 MB come back with encoding "none" and no content.
        if data.get("encoding") != "base64":
            raise RemoteError(
                f"{path} content not returned inline (encoding {data.get('encoding')!r})", 200
            )
        # GitHub wraps the base64 content at 60 columns.
        b64 = str(data.get("content") or "").replace("\n", "")
        return RemoteFile(
            path=path,
            content=base64.b64decode(b64),
            version=VersionToken(sha=str(data.get("sha") or "")),
        )

    def put_file(
        self,
        path: str,
        content: bytes,
        message: str,
        version: Optional[VersionToken] = None,
    ) -> Dict[str, Any]:
        """Create or update a file.

        Without `version` the path must not exist yet; with it, the sha must
        still be current. Either violation raises VersionConflict.
        """
        body: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content).decode("ascii"),
            "branch": self.branch,
        }
        if version is not None:
            body["sha"] = version.sha
        data = self._call("put", path, json=body)
        logger.info("committed %s to %s/%s@%s", path, self.owner, self.repo, self.branch)
        return data
