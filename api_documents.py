from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pymongo import DESCENDING
from pymongo.database import Database

from database import create_document, get_db, get_documents
from schemas import Document
from utils import public_doc

router = APIRouter(prefix="/api/documents", tags=["documents"])


@router.post("", status_code=201)
def add_document(payload: Document, db: Database = Depends(get_db)):
    doc_id = create_document(db, "document", payload)
    return {"id": doc_id, **payload.model_dump()}


@router.get("")
def list_documents(
    topic_id: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    db: Database = Depends(get_db),
) -> List[dict]:
    flt = {}
    if topic_id:
        flt["topic_id"] = topic_id
    if type:
        flt["type"] = type
    docs = get_documents(db, "document", flt, limit=limit, sort=[("created_at", DESCENDING)])
    return [public_doc(d) for d in docs]
