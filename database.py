"""
MongoDB access for the notebook service.

Each collection name matches a lowercase schema name from schemas.py:
- Node -> "node"
- Question -> "question"
- Solution -> "solution"
- Document -> "document"
- ActivityLog -> "activity_log"
"""
import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import DATABASE_NAME, DATABASE_URL
from utils import now_iso

logger = logging.getLogger(__name__)

_client: Optional[MongoClient] = None


def get_client() -> MongoClient:
    global _client
    if _client is None:
        logger.info("Connecting to MongoDB database %s", DATABASE_NAME)
        _client = MongoClient(DATABASE_URL, serverSelectionTimeoutMS=5000)
    return _client


def get_db() -> Database:
    """FastAPI dependency returning the application database."""
    return get_client()[DATABASE_NAME]


def close_client() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None


def ensure_indexes(db: Database) -> None:
    db["node"].create_index([("node_id", ASCENDING)], unique=True)
    db["node"].create_index([("parent_id", ASCENDING)])
    db["question"].create_index([("sno", ASCENDING)])
    db["solution"].create_index([("question_id", ASCENDING), ("version", ASCENDING)])
    db["activity_log"].create_index([("node_id", ASCENDING)])


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document with created/updated timestamps and return its _id as a string."""
    if isinstance(data, BaseModel):
        data = data.model_dump()
    doc = dict(data)
    doc.setdefault("created_at", now_iso())
    doc.setdefault("updated_at", doc["created_at"])
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
    sort: Optional[List[tuple]] = None,
) -> List[Dict[str, Any]]:
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)
