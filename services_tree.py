"""
Notebook tree operations.

Nodes are stored flat in the "node" collection and linked by parent_id.
`children` is never persisted: it is derived here on demand. Container
progress (syllabus/folder) is owned by the server and recomputed from the
direct children whenever a child is created, deleted or changes progress.
"""
import logging
import re
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional

from pymongo import ASCENDING
from pymongo.database import Database

from schemas import CONTAINER_TYPES, Node
from utils import new_node_id, now_iso

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("title", "content", "resource_type", "tags", "pinned", "prerequisites", "progress")
NON_NULLABLE_FIELDS = ("title", "tags", "pinned", "prerequisites", "progress")


class NodeValidationError(ValueError):
    """A write would leave the tree in an invalid shape."""


class ParentNotFoundError(NodeValidationError):
    """parent_id does not reference an existing node."""


# ---------------------------
# Pure helpers
# ---------------------------

def node_out(doc: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(doc)
    out.pop("_id", None)
    return out


def unique(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(values))


def build_tree(nodes: List[Dict[str, Any]], parent_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Assemble a flat node list into nested dicts with a derived `children` list.

    Only nodes reachable from parent_id are returned, each at most once, in
    the order they appear in `nodes`. A cycle in the parent graph is cut at
    the first repeated node.
    """
    return _build(nodes, parent_id, {parent_id} if parent_id is not None else set())


def _build(nodes, parent_id, seen):
    level = []
    for node in nodes:
        if node.get("parent_id") != parent_id or node["node_id"] in seen:
            continue
        seen.add(node["node_id"])
        level.append({**node, "children": _build(nodes, node["node_id"], seen)})
    return level


def collect_descendant_ids(nodes: List[Dict[str, Any]], node_id: str) -> List[str]:
    """Transitive descendant ids of node_id (not including it), pre-order."""
    by_parent = defaultdict(list)
    for n in nodes:
        by_parent[n.get("parent_id")].append(n["node_id"])

    out: List[str] = []
    seen = {node_id}
    stack = list(reversed(by_parent.get(node_id, [])))
    while stack:
        current = stack.pop()
        if current in seen:
            continue
        seen.add(current)
        out.append(current)
        stack.extend(reversed(by_parent.get(current, [])))
    return out


def aggregate_progress(values: List[int]) -> int:
    if not values:
        return 0
    return int(round(sum(values) / len(values)))


# ---------------------------
# Reads
# ---------------------------

def get_node(db: Database, node_id: str) -> Optional[Dict[str, Any]]:
    doc = db["node"].find_one({"node_id": node_id})
    return node_out(doc) if doc else None


def fetch_children(db: Database, parent_id: Optional[str]) -> List[Dict[str, Any]]:
    """Direct children of parent_id; root-level nodes when parent_id is None."""
    cursor = db["node"].find({"parent_id": parent_id}).sort("_id", ASCENDING)
    return [node_out(d) for d in cursor]


def fetch_descendants(db: Database, parent_id: str) -> List[Dict[str, Any]]:
    """All transitive descendants, depth first, one query per visited node."""
    out: List[Dict[str, Any]] = []
    seen = {parent_id}

    def walk(pid):
        for child in fetch_children(db, pid):
            if child["node_id"] in seen:
                continue
            seen.add(child["node_id"])
            out.append(child)
            walk(child["node_id"])

    walk(parent_id)
    return out


def fetch_all(db: Database) -> List[Dict[str, Any]]:
    return [node_out(d) for d in db["node"].find({}).sort("_id", ASCENDING)]


def search_nodes(db: Database, query: str, limit: int = 20) -> List[Dict[str, Any]]:
    pattern = {"$regex": re.escape(query), "$options": "i"}
    cursor = db["node"].find(
        {"$or": [{"title": pattern}, {"content": pattern}, {"tags": pattern}]}
    ).sort("_id", ASCENDING).limit(limit)
    return [node_out(d) for d in cursor]


# ---------------------------
# Writes
# ---------------------------

def validate_parent(db: Database, parent_id: Optional[str]) -> Optional[Dict[str, Any]]:
    if parent_id is None:
        return None
    parent = get_node(db, parent_id)
    if parent is None:
        raise ParentNotFoundError(f"Parent node {parent_id} not found")
    if parent["type"] not in CONTAINER_TYPES:
        raise NodeValidationError("Only syllabus and folder nodes can have children")
    return parent


def create_node(
    db: Database,
    title: str,
    type: str,
    parent_id: Optional[str] = None,
    content: Optional[str] = None,
    resource_type: Optional[str] = None,
    tags: Optional[List[str]] = None,
    pinned: bool = False,
    prerequisites: Optional[List[str]] = None,
    source_file: Optional[str] = None,
) -> Dict[str, Any]:
    validate_parent(db, parent_id)

    node = Node(
        node_id=new_node_id(),
        title=title,
        type=type,
        parent_id=parent_id,
        content=content if type == "file" else None,
        resource_type=resource_type,
        tags=unique(tags or []),
        pinned=pinned,
        prerequisites=unique(prerequisites or []),
        source_file=source_file,
    )
    doc = node.model_dump()
    doc["created_at"] = doc["updated_at"] = now_iso()
    db["node"].insert_one(doc)
    logger.info("Created %s node %s under %s", type, node.node_id, parent_id)

    if parent_id is not None:
        recompute_ancestors(db, parent_id)
    return node_out(doc)


def update_node(db: Database, node_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Merge the provided fields into a node. Returns None when the node is missing."""
    node = get_node(db, node_id)
    if node is None:
        return None

    changes = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS}
    for key in NON_NULLABLE_FIELDS:
        if key in changes and changes[key] is None:
            raise NodeValidationError(f"{key} cannot be null")
    if "title" in changes:
        changes["title"] = changes["title"].strip()
        if not changes["title"]:
            raise NodeValidationError("Title is required")
    if "content" in changes and node["type"] != "file":
        raise NodeValidationError("Only file nodes hold content")
    if "tags" in changes:
        changes["tags"] = unique(changes["tags"])
    if "prerequisites" in changes:
        changes["prerequisites"] = [p for p in unique(changes["prerequisites"]) if p != node_id]
    if "progress" in changes:
        value = changes["progress"]
        if node["type"] != "file":
            raise NodeValidationError("Progress of a container is derived from its children")
        if not 0 <= value <= 100:
            raise NodeValidationError("Progress must be between 0 and 100")

    if not changes:
        return node

    changes["updated_at"] = now_iso()
    db["node"].update_one({"node_id": node_id}, {"$set": changes})

    if "progress" in changes and node.get("parent_id"):
        recompute_ancestors(db, node["parent_id"])
    return get_node(db, node_id)


def update_progress(db: Database, node_id: str, value: int) -> Optional[Dict[str, Any]]:
    return update_node(db, node_id, {"progress": value})


def delete_node(db: Database, node_id: str) -> Optional[List[str]]:
    """
    Delete a node and every transitive descendant in one batched write.

    Returns the deleted node ids, or None when the node does not exist.
    """
    node = get_node(db, node_id)
    if node is None:
        return None

    edges = list(db["node"].find({}, {"node_id": 1, "parent_id": 1}))
    ids = [node_id] + collect_descendant_ids(edges, node_id)
    result = db["node"].delete_many({"node_id": {"$in": ids}})
    logger.info("Deleted node %s with %d descendants", node_id, result.deleted_count - 1)

    if node.get("parent_id"):
        recompute_ancestors(db, node["parent_id"])
    return ids


def recompute_ancestors(db: Database, parent_id: Optional[str]) -> None:
    """Refresh the aggregate progress of parent_id and every container above it."""
    seen = set()
    while parent_id is not None and parent_id not in seen:
        seen.add(parent_id)
        parent = db["node"].find_one({"node_id": parent_id}, {"parent_id": 1, "type": 1})
        if parent is None:
            logger.warning("Orphaned reference to missing parent %s", parent_id)
            return
        if parent.get("type") in CONTAINER_TYPES:
            children = db["node"].find({"parent_id": parent_id}, {"progress": 1})
            value = aggregate_progress([c.get("progress", 0) for c in children])
            db["node"].update_one({"node_id": parent_id}, {"$set": {"progress": value}})
        parent_id = parent.get("parent_id")


# ---------------------------
# Import
# ---------------------------

def validate_import(node: Dict[str, Any], path: str = "root") -> None:
    if not (node.get("title") or "").strip():
        raise NodeValidationError(f"{path}: title is required")
    if node.get("type", "file") not in ("syllabus", "folder", "file"):
        raise NodeValidationError(f"{path}: unknown type {node.get('type')!r}")
    children = node.get("children") or []
    if children and node.get("type", "file") == "file":
        raise NodeValidationError(f"{path}: file nodes cannot have children")
    for i, child in enumerate(children):
        validate_import(child, f"{path}.children[{i}]")


def import_tree(db: Database, root: Dict[str, Any], source_file: str = "unknown") -> Dict[str, Any]:
    """Insert a nested {title, type, content, tags, children} structure at root level."""
    validate_import(root)

    def insert(node, parent_id):
        created = create_node(
            db,
            title=node["title"].strip(),
            type=node.get("type", "file"),
            parent_id=parent_id,
            content=node.get("content"),
            tags=node.get("tags"),
            source_file=source_file,
        )
        for child in node.get("children") or []:
            insert(child, created["node_id"])
        return created

    saved = insert(root, None)
    logger.info("Imported tree %s from %s", saved["node_id"], source_file)
    return saved
