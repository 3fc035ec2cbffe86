"""
Notebook endpoints: flat node reads, tree view, CRUD with cascade delete,
progress updates and tree import.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator
from pymongo.database import Database

from database import get_db
from schemas import NodeType
import services_tree as tree

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notes", tags=["notes"])


# ---------------------------
# Request/response models
# ---------------------------

class NodeCreateRequest(BaseModel):
    title: str = Field(..., min_length=1)
    type: NodeType
    parent_id: Optional[str] = None
    content: Optional[str] = None
    resource_type: Optional[str] = None
    tags: List[str] = []
    pinned: bool = False
    prerequisites: List[str] = []

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title is required")
        return v.strip()


class NodeUpdateRequest(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    resource_type: Optional[str] = None
    tags: Optional[List[str]] = None
    pinned: Optional[bool] = None
    prerequisites: Optional[List[str]] = None
    progress: Optional[int] = Field(None, ge=0, le=100)

    @field_validator("title", "tags", "pinned", "prerequisites", "progress")
    @classmethod
    def not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title is required")
        return v.strip()


class ProgressRequest(BaseModel):
    progress: int = Field(..., ge=0, le=100)


class NodeResponse(BaseModel):
    node_id: str
    title: str
    type: str
    parent_id: Optional[str] = None
    content: Optional[str] = None
    resource_type: Optional[str] = None
    tags: List[str] = []
    pinned: bool = False
    progress: int = 0
    prerequisites: List[str] = []
    last_studied: Optional[str] = None
    source_file: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class DeleteResponse(BaseModel):
    message: str
    deleted: List[str]


class ImportNode(BaseModel):
    title: str
    type: NodeType = "file"
    content: Optional[str] = None
    tags: List[str] = []
    children: List["ImportNode"] = []


class ImportRequest(BaseModel):
    source: Optional[str] = None
    root_node: ImportNode


def _raise_for(e: tree.NodeValidationError):
    status = 404 if isinstance(e, tree.ParentNotFoundError) else 400
    raise HTTPException(status_code=status, detail=str(e))


# ---------------------------
# Reads
# ---------------------------

@router.get("", response_model=List[NodeResponse])
def list_nodes(
    parent_id: Optional[str] = Query(None, description="List the children of this node (root nodes when omitted)"),
    recursive: bool = Query(False, description="Include every descendant, not just direct children"),
    db: Database = Depends(get_db),
):
    if parent_id and recursive:
        return tree.fetch_descendants(db, parent_id)
    return tree.fetch_children(db, parent_id)


@router.get("/tree")
def get_tree(
    root_id: Optional[str] = Query(None, description="Root the tree at this node (top level when omitted)"),
    db: Database = Depends(get_db),
) -> List[Dict[str, Any]]:
    return tree.build_tree(tree.fetch_all(db), root_id)


@router.get("/search", response_model=List[NodeResponse])
def search(
    q: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=100),
    db: Database = Depends(get_db),
):
    return tree.search_nodes(db, q, limit)


@router.get("/{node_id}", response_model=NodeResponse)
def get_node(node_id: str, db: Database = Depends(get_db)):
    node = tree.get_node(db, node_id)
    if not node:
        raise HTTPException(status_code=404, detail="Node not found")
    return node


# ---------------------------
# Writes
# ---------------------------

@router.post("", response_model=NodeResponse, status_code=201)
def create_node(payload: NodeCreateRequest, db: Database = Depends(get_db)):
    try:
        return tree.create_node(db, **payload.model_dump())
    except tree.NodeValidationError as e:
        _raise_for(e)


@router.put("/{node_id}", response_model=NodeResponse)
def update_node(node_id: str, payload: NodeUpdateRequest, db: Database = Depends(get_db)):
    try:
        node = tree.update_node(db, node_id, payload.model_dump(exclude_unset=True))
    except tree.NodeValidationError as e:
        _raise_for(e)
    if not node:
        raise HTTPException(status_code=404, detail="Node not found")
    return node


@router.patch("/{node_id}/progress", response_model=NodeResponse)
def update_progress(node_id: str, payload: ProgressRequest, db: Database = Depends(get_db)):
    try:
        node = tree.update_progress(db, node_id, payload.progress)
    except tree.NodeValidationError as e:
        _raise_for(e)
    if not node:
        raise HTTPException(status_code=404, detail="Node not found")
    return node


@router.delete("/{node_id}", response_model=DeleteResponse)
def delete_node(node_id: str, db: Database = Depends(get_db)):
    deleted = tree.delete_node(db, node_id)
    if deleted is None:
        raise HTTPException(status_code=404, detail="Node not found")
    return {"message": "Node and its children deleted", "deleted": deleted}


@router.post("/import")
def import_nodes(
    payload: ImportRequest,
    check_duplicate: bool = Query(False),
    db: Database = Depends(get_db),
):
    root = payload.root_node
    if check_duplicate:
        existing = db["node"].find_one({"title": root.title, "type": "syllabus", "parent_id": None})
        if existing:
            return {"duplicate": True, "existing_id": existing["node_id"]}
    try:
        saved = tree.import_tree(db, root.model_dump(), payload.source or "unknown")
    except tree.NodeValidationError as e:
        _raise_for(e)
    return {"success": True, "root_id": saved["node_id"]}
