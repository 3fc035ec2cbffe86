from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId


def oid_str(oid: ObjectId | str) -> str:
    return str(oid)


def parse_oid(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def new_node_id() -> str:
    return str(ObjectId())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso(dt: datetime) -> str:
    # Fixed width so that string order matches time order in Mongo range queries
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def now_iso() -> str:
    return iso(utc_now())


def parse_iso(value: str) -> datetime:
    return datetime.fromisoformat(value)


def public_doc(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Copy a Mongo document with its ObjectId exposed as a string `id`."""
    out = dict(doc)
    if "_id" in out:
        out["id"] = oid_str(out.pop("_id"))
    return out


def get_now() -> datetime:
    """FastAPI dependency for the current time, overridden in tests."""
    return utc_now()
