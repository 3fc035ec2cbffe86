"""
DSA question endpoints: filtered listing (list / tree / review queue),
mastery transitions, inline notes and versioned solutions.
"""
import logging
from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator
from pymongo import ASCENDING
from pymongo.database import Database

from database import get_db
from schemas import Mastery, Question
import services_mastery as mastery_svc
from utils import get_now, iso, parse_oid, public_doc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/questions", tags=["questions"])


# ---------------------------
# Request models
# ---------------------------

class MasteryRequest(BaseModel):
    mastery: Mastery


class QuestionUpdateRequest(BaseModel):
    inline_notes: Optional[str] = None
    tags: Optional[List[str]] = None

    @field_validator("inline_notes", "tags")
    @classmethod
    def not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class SolutionRequest(BaseModel):
    code: str = Field(..., min_length=1)
    language: str = "python"
    solved_by: str = ""
    time_complexity: Optional[str] = None
    space_complexity: Optional[str] = None
    duration: int = Field(0, ge=0)


# ---------- Seed data ----------
SEED_QUESTIONS = [
    {"sno": 1, "topic": "Arrays", "subtopic": "Hashing", "pattern": "Complement lookup",
     "problem": "Two Sum", "difficulty": "Easy",
     "link": "https://leetcode.com/problems/two-sum/"},
    {"sno": 2, "topic": "Arrays", "subtopic": "Prefix", "pattern": "Prefix/suffix products",
     "problem": "Product of Array Except Self", "difficulty": "Medium",
     "link": "https://leetcode.com/problems/product-of-array-except-self/"},
    {"sno": 3, "topic": "Arrays", "subtopic": "Two Pointers", "pattern": "Opposite ends",
     "problem": "Container With Most Water", "difficulty": "Medium",
     "link": "https://leetcode.com/problems/container-with-most-water/"},
    {"sno": 4, "topic": "Strings", "subtopic": "Sliding Window", "pattern": "Variable window",
     "problem": "Longest Substring Without Repeating Characters", "difficulty": "Medium",
     "link": "https://leetcode.com/problems/longest-substring-without-repeating-characters/"},
    {"sno": 5, "topic": "Linked List", "subtopic": "Reversal", "pattern": "In-place reversal",
     "problem": "Reverse Linked List", "difficulty": "Easy",
     "link": "https://leetcode.com/problems/reverse-linked-list/"},
    {"sno": 6, "topic": "Trees", "subtopic": "Traversal", "pattern": "BFS",
     "problem": "Binary Tree Level Order Traversal", "difficulty": "Medium",
     "link": "https://leetcode.com/problems/binary-tree-level-order-traversal/"},
    {"sno": 7, "topic": "Graphs", "subtopic": "Shortest Path", "pattern": "Dijkstra",
     "problem": "Network Delay Time", "difficulty": "Medium",
     "link": "https://leetcode.com/problems/network-delay-time/"},
    {"sno": 8, "topic": "Dynamic Programming", "subtopic": "Intervals", "pattern": "Burst order",
     "problem": "Burst Balloons", "difficulty": "Hard",
     "link": "https://leetcode.com/problems/burst-balloons/"},
]


def ensure_seed(db: Database, now: datetime) -> int:
    """Insert seed questions whose sno is not present yet. Returns the number inserted."""
    existing = {q["sno"] for q in db["question"].find({}, {"sno": 1})}
    inserted = 0
    for seed in SEED_QUESTIONS:
        if seed["sno"] in existing:
            continue
        doc = Question(**seed).model_dump()
        doc["created_at"] = doc["updated_at"] = iso(now)
        db["question"].insert_one(doc)
        inserted += 1
    if inserted:
        logger.info("Seeded %d questions", inserted)
    return inserted


def _get_question(db: Database, question_id: str):
    oid = parse_oid(question_id)
    doc = db["question"].find_one({"_id": oid}) if oid else None
    if not doc:
        raise HTTPException(status_code=404, detail="Question not found")
    return doc


# ---------------------------
# Routes
# ---------------------------

@router.get("")
def list_questions(
    mode: Literal["list", "tree", "queue"] = Query("list"),
    solved: Optional[bool] = Query(None),
    topic: Optional[str] = Query(None),
    subtopic: Optional[str] = Query(None),
    pattern: Optional[str] = Query(None),
    mastery: Optional[Mastery] = Query(None),
    difficulty: Optional[str] = Query(None),
    limit: int = Query(0, ge=0, le=1000, description="0 means no limit"),
    skip: int = Query(0, ge=0),
    db: Database = Depends(get_db),
    now: datetime = Depends(get_now),
):
    if mode == "queue":
        return mastery_svc.review_queue(db, now, limit or None)

    flt = {}
    if solved is not None:
        flt["is_solved"] = solved
    for field, value in (("topic", topic), ("subtopic", subtopic), ("pattern", pattern),
                         ("mastery", mastery), ("difficulty", difficulty)):
        if value is not None:
            flt[field] = value

    cursor = db["question"].find(flt).sort("sno", ASCENDING).skip(skip)
    if limit:
        cursor = cursor.limit(limit)
    questions = [public_doc(d) for d in cursor]

    if mode == "tree":
        return mastery_svc.build_question_tree(questions)
    return questions


@router.get("/stats")
def question_stats(db: Database = Depends(get_db)):
    return mastery_svc.mastery_stats(list(db["question"].find({}, {"_id": 0, "is_solved": 1, "difficulty": 1, "mastery": 1})))


@router.post("/seed")
def seed_questions(db: Database = Depends(get_db), now: datetime = Depends(get_now)):
    return {"inserted": ensure_seed(db, now)}


@router.get("/{question_id}")
def get_question(question_id: str, db: Database = Depends(get_db)):
    return public_doc(_get_question(db, question_id))


@router.patch("/{question_id}/mastery")
def update_mastery(
    question_id: str,
    payload: MasteryRequest,
    db: Database = Depends(get_db),
    now: datetime = Depends(get_now),
):
    doc = mastery_svc.set_mastery(db, question_id, payload.mastery, now)
    if doc is None:
        raise HTTPException(status_code=404, detail="Question not found")
    return doc


@router.patch("/{question_id}")
def update_question(
    question_id: str,
    payload: QuestionUpdateRequest,
    db: Database = Depends(get_db),
    now: datetime = Depends(get_now),
):
    doc = _get_question(db, question_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes:
        changes["updated_at"] = iso(now)
        db["question"].update_one({"_id": doc["_id"]}, {"$set": changes})
        doc.update(changes)
    return public_doc(doc)


@router.post("/{question_id}/solutions")
def save_solution(
    question_id: str,
    payload: SolutionRequest,
    db: Database = Depends(get_db),
    now: datetime = Depends(get_now),
):
    result = mastery_svc.record_solution(db, question_id, now=now, **payload.model_dump())
    if result is None:
        raise HTTPException(status_code=404, detail="Question not found")
    return {"success": True, **result}


@router.get("/{question_id}/solutions")
def list_solutions(question_id: str, db: Database = Depends(get_db)):
    _get_question(db, question_id)
    return mastery_svc.solution_history(db, question_id)
