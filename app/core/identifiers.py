from typing import Optional, Tuple
import re
import string
import time
from .errors import InvalidInput

"""Pure helpers that turn request fields into repository paths."""

DEFAULT_SLUG = "pahlawan"
DEFAULT_EXT = "png"

_DATA_URL_RE = re.compile(r"data:(.+);base64,(.+)")
_QUOTES_RE = re.compile(r"[‘’'\"]")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_FILENAME_EXT_RE = re.compile(r"\.([a-z0-9]+)$")
_BASE36 = string.digits + string.ascii_lowercase

# Substring match against the lowercased MIME; first hit wins.
MIME_EXTENSIONS = (
    ("jpeg", "jpg"),
    ("jpg", "jpg"),
    ("png", "png"),
    ("webp", "webp"),
    ("gif", "gif"),
)


def derive_slug(label: str) -> str:
    """Lowercase, drop quotes, and join alphanumeric runs with '-'."""
    slug = _QUOTES_RE.sub("", str(label).strip().lower())
    slug = _NON_ALNUM_RE.sub("-", slug).strip("-")
    return slug or DEFAULT_SLUG


def _ext_from_mime(mime: Optional[str]) -> Optional[str]:
    lowered = (mime or "").lower()
    for needle, ext in MIME_EXTENSIONS:
        if needle in lowered:
            return ext
    return None


def _ext_from_filename(filename: Optional[str]) -> Optional[str]:
    match = _FILENAME_EXT_RE.search((filename or "").lower())
    return match.group(1) if match else None


def derive_extension(mime_hint: Optional[str], filename: Optional[str]) -> str:
    return _ext_from_mime(mime_hint) or _ext_from_filename(filename) or DEFAULT_EXT


def parse_data_url(data_url: str) -> Tuple[str, str]:
    """Split "data:<mime>;base64,<payload>" into (mime, payload)."""
    match = _DATA_URL_RE.fullmatch(str(data_url))
    if not match:
        raise InvalidInput("data_url is invalid")
    return match.group(1), match.group(2)


def unique_suffix(now_ms: Optional[int] = None) -> str:
    """Epoch milliseconds in base 36, unique to the resolution of the clock."""
    value = int(time.time() * 1000) if now_ms is None else int(now_ms)
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def image_path(image_dir: str, label: str, ext: str, suffix: str) -> str:
    return f"{image_dir.strip('/')}/{derive_slug(label)}-{suffix}.{ext}"
