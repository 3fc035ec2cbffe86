"""
Tests for the /api/notes endpoints.
"""
import pytest


def create(client, title, type="folder", parent_id=None, **fields):
    response = client.post("/api/notes", json={"title": title, "type": type, "parent_id": parent_id, **fields})
    assert response.status_code == 201, response.text
    return response.json()


def test_root_banner(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "message" in response.json()


def test_create_node_defaults(client):
    node = create(client, "DSA", type="syllabus", tags=["cs", "cs", "prep"])
    assert node["node_id"]
    assert node["parent_id"] is None
    assert node["progress"] == 0
    assert node["pinned"] is False
    assert node["tags"] == ["cs", "prep"]
    assert node["created_at"]


def test_container_content_is_dropped(client):
    node = create(client, "Folder", content="ignored")
    assert node["content"] is None


def test_tree_scenario_create_then_cascade_delete(client):
    dsa = create(client, "DSA")
    create(client, "TwoSum", type="file", parent_id=dsa["node_id"])

    tree = client.get("/api/notes/tree").json()
    assert len(tree) == 1
    assert tree[0]["title"] == "DSA"
    assert [c["title"] for c in tree[0]["children"]] == ["TwoSum"]
    assert tree[0]["children"][0]["children"] == []

    response = client.delete(f"/api/notes/{dsa['node_id']}")
    assert response.status_code == 200
    assert len(response.json()["deleted"]) == 2

    assert client.get("/api/notes").json() == []


def test_cascade_delete_removes_every_descendant(client, db):
    root = create(client, "Root", type="syllabus")
    a = create(client, "A", parent_id=root["node_id"])
    b = create(client, "B", parent_id=a["node_id"])
    leaf = create(client, "Leaf", type="file", parent_id=b["node_id"])
    keep = create(client, "Keep", type="file", parent_id=root["node_id"])

    deleted = client.delete(f"/api/notes/{a['node_id']}").json()["deleted"]
    assert set(deleted) == {a["node_id"], b["node_id"], leaf["node_id"]}

    remaining = list(db["node"].find({}))
    assert {d["node_id"] for d in remaining} == {root["node_id"], keep["node_id"]}
    assert all(d["parent_id"] not in deleted for d in remaining)


def test_delete_missing_node_is_404(client):
    assert client.delete("/api/notes/does-not-exist").status_code == 404


def test_list_children_and_recursive_descendants(client):
    root = create(client, "Root")
    child = create(client, "Child", parent_id=root["node_id"])
    grandchild = create(client, "Grandchild", type="file", parent_id=child["node_id"])

    direct = client.get("/api/notes", params={"parent_id": root["node_id"]}).json()
    assert [n["node_id"] for n in direct] == [child["node_id"]]

    everything = client.get("/api/notes", params={"parent_id": root["node_id"], "recursive": "true"}).json()
    assert [n["node_id"] for n in everything] == [child["node_id"], grandchild["node_id"]]


def test_refetch_is_idempotent(client):
    root = create(client, "Root")
    for title in ("one", "two", "three"):
        create(client, title, type="file", parent_id=root["node_id"])

    params = {"parent_id": root["node_id"], "recursive": "true"}
    first = client.get("/api/notes", params=params).json()
    second = client.get("/api/notes", params=params).json()
    assert first == second
    assert [n["title"] for n in first] == ["one", "two", "three"]


@pytest.mark.parametrize("title", ["", "   "])
def test_blank_title_is_rejected(client, db, title):
    response = client.post("/api/notes", json={"title": title, "type": "folder"})
    assert response.status_code == 422
    assert db["node"].count_documents({}) == 0


def test_unknown_type_is_rejected(client):
    assert client.post("/api/notes", json={"title": "x", "type": "video"}).status_code == 422


def test_missing_parent_is_rejected(client, db):
    response = client.post("/api/notes", json={"title": "Orphan", "type": "file", "parent_id": "nope"})
    assert response.status_code == 404
    assert db["node"].count_documents({}) == 0


def test_file_parent_is_rejected(client):
    leaf = create(client, "Leaf", type="file")
    response = client.post("/api/notes", json={"title": "Child", "type": "file", "parent_id": leaf["node_id"]})
    assert response.status_code == 400


def test_update_merges_only_provided_fields(client):
    node = create(client, "Notes", type="file", content="<p>v1</p>", tags=["a"], pinned=True)

    response = client.put(f"/api/notes/{node['node_id']}", json={"content": "<p>v2</p>"})
    assert response.status_code == 200
    updated = response.json()
    assert updated["content"] == "<p>v2</p>"
    assert updated["title"] == "Notes"
    assert updated["tags"] == ["a"]
    assert updated["pinned"] is True


def test_update_prerequisites_drops_self_reference(client):
    a = create(client, "A", type="file")
    b = create(client, "B", type="file")
    updated = client.put(
        f"/api/notes/{b['node_id']}",
        json={"prerequisites": [a["node_id"], b["node_id"], a["node_id"]]},
    ).json()
    assert updated["prerequisites"] == [a["node_id"]]


def test_null_for_required_field_is_rejected_and_node_unchanged(client, db):
    node = create(client, "Pinned", type="file", pinned=True, tags=["x"])

    for field in ("pinned", "title", "tags", "prerequisites", "progress"):
        response = client.put(f"/api/notes/{node['node_id']}", json={field: None})
        assert response.status_code == 422, field

    stored = db["node"].find_one({"node_id": node["node_id"]})
    assert stored["pinned"] is True
    assert stored["title"] == "Pinned"
    assert stored["tags"] == ["x"]
    assert client.get(f"/api/notes/{node['node_id']}").status_code == 200


def test_content_can_be_cleared_with_null(client):
    node = create(client, "Draft", type="file", content="text")
    updated = client.put(f"/api/notes/{node['node_id']}", json={"content": None}).json()
    assert updated["content"] is None


def test_update_strips_title_like_create(client):
    node = create(client, "  A  ", type="file")
    assert node["title"] == "A"
    updated = client.put(f"/api/notes/{node['node_id']}", json={"title": "  B  "}).json()
    assert updated["title"] == "B"
    assert client.put(f"/api/notes/{node['node_id']}", json={"title": "   "}).status_code == 422


def test_update_missing_node_is_404(client):
    assert client.put("/api/notes/missing", json={"title": "x"}).status_code == 404


def test_progress_aggregates_up_the_tree(client):
    syllabus = create(client, "Syllabus", type="syllabus")
    folder = create(client, "Week 1", parent_id=syllabus["node_id"])
    f1 = create(client, "Lecture 1", type="file", parent_id=folder["node_id"])
    create(client, "Lecture 2", type="file", parent_id=folder["node_id"])
    create(client, "Reading", type="file", parent_id=syllabus["node_id"])

    response = client.patch(f"/api/notes/{f1['node_id']}/progress", json={"progress": 100})
    assert response.status_code == 200
    assert response.json()["progress"] == 100

    assert client.get(f"/api/notes/{folder['node_id']}").json()["progress"] == 50
    assert client.get(f"/api/notes/{syllabus['node_id']}").json()["progress"] == 25


def test_delete_recomputes_parent_progress(client):
    folder = create(client, "Folder")
    done = create(client, "Done", type="file", parent_id=folder["node_id"])
    todo = create(client, "Todo", type="file", parent_id=folder["node_id"])
    client.patch(f"/api/notes/{done['node_id']}/progress", json={"progress": 100})
    assert client.get(f"/api/notes/{folder['node_id']}").json()["progress"] == 50

    client.delete(f"/api/notes/{todo['node_id']}")
    assert client.get(f"/api/notes/{folder['node_id']}").json()["progress"] == 100


def test_container_progress_cannot_be_set(client):
    folder = create(client, "Folder")
    response = client.patch(f"/api/notes/{folder['node_id']}/progress", json={"progress": 40})
    assert response.status_code == 400


def test_progress_out_of_range_is_rejected(client):
    leaf = create(client, "Leaf", type="file")
    assert client.patch(f"/api/notes/{leaf['node_id']}/progress", json={"progress": 101}).status_code == 422


def test_import_tree(client):
    payload = {
        "source": "syllabus.csv",
        "root_node": {
            "title": "Algorithms",
            "type": "syllabus",
            "children": [
                {"title": "Sorting", "type": "folder", "children": [
                    {"title": "Merge sort", "type": "file", "content": "divide and conquer"},
                ]},
                {"title": "Graphs", "type": "folder"},
            ],
        },
    }
    response = client.post("/api/notes/import", json=payload)
    assert response.status_code == 200
    root_id = response.json()["root_id"]

    tree = client.get("/api/notes/tree", params={"root_id": root_id}).json()
    assert [n["title"] for n in tree] == ["Sorting", "Graphs"]
    assert tree[0]["children"][0]["title"] == "Merge sort"
    assert tree[0]["children"][0]["source_file"] == "syllabus.csv"

    duplicate = client.post("/api/notes/import", params={"check_duplicate": "true"}, json=payload).json()
    assert duplicate == {"duplicate": True, "existing_id": root_id}


def test_import_rejects_children_under_files(client, db):
    payload = {"root_node": {"title": "Bad", "type": "file", "children": [{"title": "x"}]}}
    assert client.post("/api/notes/import", json=payload).status_code == 400
    assert db["node"].count_documents({}) == 0


def test_search_matches_title_case_insensitively(client):
    create(client, "Dynamic Programming", type="file")
    create(client, "Graphs", type="file")
    results = client.get("/api/notes/search", params={"q": "dynamic"}).json()
    assert [r["title"] for r in results] == ["Dynamic Programming"]
