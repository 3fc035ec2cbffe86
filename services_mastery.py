"""
Mastery levels and review scheduling for DSA questions.

Every mastery change stamps last_practiced and moves next_review forward by
a fixed number of days for the new level. Untouched questions are never due.
"""
import logging
import math
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.database import Database

from utils import iso, parse_oid, public_doc

logger = logging.getLogger(__name__)

MASTERY_LEVELS = ["untouched", "attempted", "solved", "understood", "mastered"]

REVIEW_OFFSET_DAYS = {
    "untouched": 0,
    "attempted": 1,
    "solved": 3,
    "understood": 7,
    "mastered": 30,
}

DIFFICULTIES = ["Easy", "Medium", "Hard"]


def next_review_for(mastery: str, now: datetime) -> datetime:
    if mastery not in REVIEW_OFFSET_DAYS:
        raise ValueError(f"Unknown mastery level {mastery!r}")
    return now + timedelta(days=REVIEW_OFFSET_DAYS[mastery])


def apply_mastery(mastery: str, now: datetime) -> Dict[str, Any]:
    """Field changes for moving a question to `mastery` at `now`."""
    changes = {
        "mastery": mastery,
        "last_practiced": iso(now),
        "next_review": iso(next_review_for(mastery, now)),
        "updated_at": iso(now),
    }
    if MASTERY_LEVELS.index(mastery) >= MASTERY_LEVELS.index("solved"):
        changes["is_solved"] = True
    return changes


def set_mastery(db: Database, question_id: str, mastery: str, now: datetime) -> Optional[Dict[str, Any]]:
    oid = parse_oid(question_id)
    if oid is None:
        return None
    doc = db["question"].find_one_and_update(
        {"_id": oid},
        {"$set": apply_mastery(mastery, now)},
        return_document=ReturnDocument.AFTER,
    )
    if doc is None:
        return None
    logger.info("Question %s -> %s, next review %s", question_id, mastery, doc["next_review"])
    return public_doc(doc)


def due_filter(now: datetime) -> Dict[str, Any]:
    return {"next_review": {"$lte": iso(now)}, "mastery": {"$ne": "untouched"}}


def is_due(question: Dict[str, Any], now: datetime) -> bool:
    if question.get("mastery", "untouched") == "untouched":
        return False
    next_review = question.get("next_review")
    return next_review is not None and next_review <= iso(now)


def review_queue(db: Database, now: datetime, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    cursor = db["question"].find(due_filter(now)).sort("next_review", ASCENDING)
    if limit:
        cursor = cursor.limit(limit)
    return [public_doc(d) for d in cursor]


def build_question_tree(questions: List[Dict[str, Any]]) -> Dict[str, Dict[str, Dict[str, List[Dict[str, Any]]]]]:
    """Group questions into topic -> subtopic -> pattern buckets, ordered by sno."""
    tree: Dict[str, Dict[str, Dict[str, List[Dict[str, Any]]]]] = {}
    for q in sorted(questions, key=lambda q: q.get("sno", 0)):
        topic = q.get("topic") or "General"
        subtopic = q.get("subtopic") or "General"
        pattern = q.get("pattern") or "General"
        tree.setdefault(topic, {}).setdefault(subtopic, {}).setdefault(pattern, []).append(q)
    return tree


def mastery_stats(questions: List[Dict[str, Any]]) -> Dict[str, Any]:
    solved = [q for q in questions if q.get("is_solved")]
    stats = {d.lower(): sum(1 for q in solved if q.get("difficulty") == d) for d in DIFFICULTIES}
    stats["total_solved"] = len(solved)
    stats["total_questions"] = len(questions)
    mastery = {level: 0 for level in MASTERY_LEVELS}
    for q in questions:
        level = q.get("mastery", "untouched")
        if level in mastery:
            mastery[level] += 1
    stats["mastery"] = mastery
    return stats


def record_solution(
    db: Database,
    question_id: str,
    code: str,
    now: datetime,
    language: str = "python",
    solved_by: str = "",
    time_complexity: Optional[str] = None,
    space_complexity: Optional[str] = None,
    duration: int = 0,
) -> Optional[Dict[str, Any]]:
    """
    Store a new solution version and refresh the question summary.

    Mastery is left alone: submitting code is not evidence of understanding.
    Returns {"version", "question"} or None when the question is missing.
    """
    oid = parse_oid(question_id)
    if oid is None or db["question"].find_one({"_id": oid}, {"_id": 1}) is None:
        return None

    last = db["solution"].find_one({"question_id": question_id}, sort=[("version", DESCENDING)])
    version = (last["version"] if last else 0) + 1
    db["solution"].insert_one({
        "question_id": question_id,
        "code": code,
        "language": language,
        "version": version,
        "time_complexity": time_complexity,
        "space_complexity": space_complexity,
        "duration": duration,
        "solved_by": solved_by,
        "created_at": iso(now),
    })

    doc = db["question"].find_one_and_update(
        {"_id": oid},
        {
            "$set": {
                "is_solved": True,
                "code": code,
                "solved_by": solved_by,
                "last_practiced": iso(now),
                "updated_at": iso(now),
            },
            "$inc": {"time_spent_minutes": math.ceil(duration / 60)},
        },
        return_document=ReturnDocument.AFTER,
    )
    logger.info("Saved solution v%d for question %s", version, question_id)
    return {"version": version, "question": public_doc(doc)}


def solution_history(db: Database, question_id: str) -> List[Dict[str, Any]]:
    cursor = db["solution"].find({"question_id": question_id}).sort("version", DESCENDING)
    return [public_doc(d) for d in cursor]
