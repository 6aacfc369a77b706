import os, sys
import base64
import hashlib
import itertools
import json
from io import BytesIO
from urllib.parse import unquote

import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Ensure project root on sys.path so `import app...` works
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from app.core.config import Settings
from app.github.contents import ContentsClient
from app.github.storage import UploadService
from app.main import app
from app.routers.upload import get_upload_service

API_URL = "https://api.github.test"
OWNER = "hero-org"
REPO = "hero-data"
FIXED_NOW = "2026-10-19T08:00:00.000Z"


class FakeResponse:
    def __init__(self, status_code: int, data=None):
        self.status_code = status_code
        self.text = "" if data is None else json.dumps(data)

    def json(self):
        return json.loads(self.text)


class FakeGitHub:
    """In-memory stand-in for the Contents API, shaped like a requests.Session.

    Files live in `files` (path -> bytes); a file's sha is the sha1 of its
    bytes. `before_put` runs ahead of every PUT so a test can slip in a
    concurrent writer. `failures` forces a status for ("GET"|"PUT", path).
    Paths in `too_large` are served the way GitHub serves files over 1 MB.
    """

    def __init__(self):
        self.files = {}
        self.calls = []
        self.timeouts = []
        self.before_put = None
        self.failures = {}
        self.too_large = set()
        self.closed = False
        self._commit_ids = itertools.count(1)

    @staticmethod
    def sha(content: bytes) -> str:
        return hashlib.sha1(content).hexdigest()

    def _path(self, url: str) -> str:
        prefix = f"{API_URL}/repos/{OWNER}/{REPO}/contents/"
        assert url.startswith(prefix), url
        return unquote(url[len(prefix):])

    def write(self, path: str, content: bytes) -> None:
        self.files[path] = content

    def read_json(self, path: str):
        return json.loads(self.files[path].decode("utf-8-sig"))

    def get(self, url, params=None, timeout=None):
        path = self._path(url)
        self.calls.append(("GET", path, params))
        self.timeouts.append(timeout)
        if ("GET", path) in self.failures:
            status, message = self.failures[("GET", path)]
            return FakeResponse(status, {"message": message})
        if path not in self.files:
            return FakeResponse(404, {"message": "Not Found"})
        content = self.files[path]
        if path in self.too_large:
            return FakeResponse(
                200, {"path": path, "encoding": "none", "content": "", "sha": self.sha(content)}
            )
        return FakeResponse(
            200,
            {
                "path": path,
                "encoding": "base64",
                # encodebytes wraps lines the way GitHub does
                "content": base64.encodebytes(content).decode("ascii"),
                "sha": self.sha(content),
            },
        )

    def put(self, url, json=None, timeout=None):
        path = self._path(url)
        self.calls.append(("PUT", path, json))
        self.timeouts.append(timeout)
        if self.before_put is not None:
            self.before_put(path, json)
        if ("PUT", path) in self.failures:
            status, message = self.failures[("PUT", path)]
            return FakeResponse(status, {"message": message})
        sha = json.get("sha")
        if path in self.files:
            current = self.sha(self.files[path])
            if sha is None:
                return FakeResponse(422, {"message": "Invalid request.\n\n\"sha\" wasn't supplied."})
            if sha != current:
                return FakeResponse(409, {"message": f"{path} does not match {sha}"})
        elif sha is not None:
            return FakeResponse(409, {"message": f"{path} does not match {sha}"})
        created = path not in self.files
        self.files[path] = base64.b64decode(json["content"])
        commit_id = f"c{next(self._commit_ids)}"
        return FakeResponse(
            201 if created else 200,
            {
                "content": {"path": path, "sha": self.sha(self.files[path])},
                "commit": {
                    "sha": commit_id,
                    "html_url": f"https://github.test/{OWNER}/{REPO}/commit/{commit_id}",
                },
            },
        )

    def close(self):
        self.closed = True

    def put_paths(self):
        return [path for method, path, _ in self.calls if method == "PUT"]


def png_bytes(size=(2, 2), color=(255, 0, 0)) -> bytes:
    img = Image.new("RGB", size, color=color)
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def png_data_url(**kwargs) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes(**kwargs)).decode("ascii")


@pytest.fixture
def cfg():
    return Settings(
        github_token="test-token",
        github_owner=OWNER,
        github_repo=REPO,
        github_branch="main",
        github_api_url=API_URL,
        github_raw_url="https://raw.githubusercontent.com",
        index_path="data/pahlawan_uploads.json",
        image_dir="images",
        index_write_retries=3,
        request_timeout=5,
    )


@pytest.fixture
def fake():
    return FakeGitHub()


@pytest.fixture
def contents(fake, cfg):
    return ContentsClient(
        fake,
        owner=OWNER,
        repo=REPO,
        branch=cfg.github_branch,
        api_url=API_URL,
        timeout=cfg.request_timeout,
    )


@pytest.fixture
def make_service(contents):
    suffixes = itertools.count(1)

    def _make(settings):
        return UploadService(
            settings,
            contents,
            now=lambda: FIXED_NOW,
            suffix=lambda: f"s{next(suffixes)}",
        )

    return _make


@pytest.fixture
def service(make_service, cfg):
    return make_service(cfg)


@pytest.fixture
def api(service):
    app.dependency_overrides[get_upload_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()
