from typing import Any, Dict, List, Optional
import json
import logging
from pydantic import BaseModel, ConfigDict, Field
from ..core.errors import RemoteError
from .contents import ContentsClient, VersionToken

logger = logging.getLogger(__name__)

LABEL_KEY = "nama_pahlawan"


class IndexSnapshot(BaseModel):
    """The index records as read, plus the sha a write must be conditioned on.

    `version` is None when the index file does not exist yet, or could not be
    read. A write without a sha then fails against an existing file instead
    of overwriting records it never saw.
    """
    model_config = ConfigDict(frozen=True)

    records: List[Any] = Field(default_factory=list)
    version: Optional[VersionToken] = None


def _label_key(record: Any) -> str:
    if not isinstance(record, dict):
        return ""
    return str(record.get(LABEL_KEY) or "").lower()


def load_index_or_default(client: ContentsClient, path: str) -> IndexSnapshot:
    """Read the index, treating any fetch or decode failure as "not created yet"."""
    try:
        remote = client.get_file(path)
    except RemoteError as e:
        logger.info("index %s unavailable (%s), starting from an empty list", path, e)
        return IndexSnapshot()
    except ValueError as e:
        logger.warning("index %s has undecodable content: %s", path, e)
        return IndexSnapshot()

    try:
        # utf-8-sig tolerates a leading BOM
        records = json.loads(remote.content.decode("utf-8-sig"))
    except ValueError as e:
        logger.warning("index %s is not valid JSON (%s), treating it as unreadable", path, e)
        return IndexSnapshot()
    if not isinstance(records, list):
        logger.warning("index %s is not a JSON array, rewriting it", path)
        records = []
    return IndexSnapshot(records=records, version=remote.version)


def upsert_record(records: List[Any], new_record: Dict[str, Any]) -> List[Any]:
    """Replace the first record with the same label (case-insensitive) or append.

    Returns a new list; `records` is left untouched.
    """
    key = _label_key(new_record)
    updated = list(records)
    for position, record in enumerate(updated):
        if _label_key(record) == key:
            updated[position] = new_record
            return updated
    updated.append(new_record)
    return updated


def dump_index(records: List[Any]) -> bytes:
    return json.dumps(records, indent=2, ensure_ascii=False).encode("utf-8")
