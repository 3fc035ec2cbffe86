"""
Client for the notebook API that keeps a local copy of the node set.

Root nodes are loaded up front; a container's descendants are fetched the
first time it is opened and cached in a SubtreeCache. Any write beneath a
node invalidates that node's entry and the entries of all its ancestors, so
the next open re-fetches the subtree instead of showing stale children.
"""
import logging
from typing import Any, Dict, List, Optional, Set

import httpx

from config import NOTEBOOK_API_BASE
from schemas import CONTAINER_TYPES
from services_tree import build_tree, collect_descendant_ids

logger = logging.getLogger(__name__)


class NotebookClientError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class SubtreeCache:
    """Tracks which container subtrees have been fetched and are still valid."""

    def __init__(self):
        self._fetched: Set[str] = set()

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._fetched

    def mark(self, node_id: str) -> None:
        self._fetched.add(node_id)

    def invalidate(self, node_id: Optional[str], nodes: Dict[str, Dict[str, Any]]) -> None:
        """Drop node_id and every ancestor of it."""
        seen = set()
        while node_id is not None and node_id not in seen:
            seen.add(node_id)
            self._fetched.discard(node_id)
            parent = nodes.get(node_id)
            node_id = parent.get("parent_id") if parent else None

    def forget(self, node_ids) -> None:
        self._fetched.difference_update(node_ids)

    def clear(self) -> None:
        self._fetched.clear()


class NotebookClient:
    def __init__(self, http: Optional[httpx.Client] = None, base_url: str = NOTEBOOK_API_BASE):
        self.http = http or httpx.Client(base_url=base_url, timeout=10.0)
        self.nodes: Dict[str, Dict[str, Any]] = {}
        self.cache = SubtreeCache()

    # ---------- transport ----------

    def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = self.http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise NotebookClientError(0, str(e)) from e
        if response.status_code >= 400:
            try:
                detail = response.json().get("detail", response.text)
            except ValueError:
                detail = response.text
            logger.warning("%s %s failed: %s %s", method, path, response.status_code, detail)
            raise NotebookClientError(response.status_code, str(detail))
        return response.json()

    def _merge(self, nodes: List[Dict[str, Any]]) -> None:
        for node in nodes:
            self.nodes[node["node_id"]] = node

    # ---------- reads ----------

    def load_roots(self) -> List[Dict[str, Any]]:
        roots = self._request("GET", "/api/notes")
        self._merge(roots)
        return roots

    def open(self, node_id: str) -> Dict[str, Any]:
        """Select a node, fetching a container's subtree the first time it is opened."""
        node = self.nodes.get(node_id)
        if node is None:
            node = self._request("GET", f"/api/notes/{node_id}")
            self._merge([node])

        if node["type"] in CONTAINER_TYPES and node_id not in self.cache:
            descendants = self._request("GET", "/api/notes", params={"parent_id": node_id, "recursive": "true"})
            # Replace the whole local subtree so deleted-elsewhere nodes disappear too
            stale = collect_descendant_ids(list(self.nodes.values()), node_id)
            for nid in stale:
                self.nodes.pop(nid, None)
            self.cache.forget(stale)
            self._merge(descendants)
            self.cache.mark(node_id)
            # The recursive fetch already covers every container below
            for child in descendants:
                if child["type"] in CONTAINER_TYPES:
                    self.cache.mark(child["node_id"])
        return self.nodes[node_id]

    def children(self, node_id: Optional[str]) -> List[Dict[str, Any]]:
        return [n for n in self.nodes.values() if n.get("parent_id") == node_id]

    def tree(self, parent_id: Optional[str] = None) -> List[Dict[str, Any]]:
        return build_tree(list(self.nodes.values()), parent_id)

    # ---------- writes ----------

    def create(self, title: str, type: str, parent_id: Optional[str] = None, **fields) -> Dict[str, Any]:
        node = self._request("POST", "/api/notes", json={"title": title, "type": type, "parent_id": parent_id, **fields})
        self.cache.invalidate(parent_id, self.nodes)
        self._merge([node])
        return node

    def update(self, node_id: str, **fields) -> Dict[str, Any]:
        node = self._request("PUT", f"/api/notes/{node_id}", json=fields)
        self.cache.invalidate(node.get("parent_id"), self.nodes)
        self._merge([node])
        return node

    def set_progress(self, node_id: str, progress: int) -> Dict[str, Any]:
        node = self._request("PATCH", f"/api/notes/{node_id}/progress", json={"progress": progress})
        self.cache.invalidate(node.get("parent_id"), self.nodes)
        self._merge([node])
        # Ancestor aggregates are recomputed server-side
        ancestor = node.get("parent_id")
        while ancestor is not None and ancestor in self.nodes:
            self._merge([self._request("GET", f"/api/notes/{ancestor}")])
            ancestor = self.nodes[ancestor].get("parent_id")
        return node

    def delete(self, node_id: str) -> List[str]:
        parent_id = self.nodes.get(node_id, {}).get("parent_id")
        result = self._request("DELETE", f"/api/notes/{node_id}")
        deleted = set(result["deleted"]) | {node_id}
        self.cache.invalidate(parent_id, self.nodes)
        self.cache.forget(deleted)
        self.nodes = {nid: n for nid, n in self.nodes.items() if nid not in deleted}
        return sorted(deleted)

    def close(self) -> None:
        self.http.close()
