import logging
from datetime import datetime, timedelta
from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from pymongo import ASCENDING
from pymongo.database import Database

from database import get_db
from services_mastery import due_filter
from utils import get_now, iso

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["dashboard"])


class Metric(BaseModel):
    title: str
    value: int


class Insight(BaseModel):
    message: str


class Notification(BaseModel):
    id: str
    message: str
    timestamp: str


class DashboardResponse(BaseModel):
    metrics: List[Metric]
    insights: List[Insight]
    notifications: List[Notification]


class SyllabusStatus(BaseModel):
    id: str
    topic: str
    status: str
    progress: int
    last_updated: str | None = None


def syllabus_status(progress: int) -> str:
    if progress >= 100:
        return "DONE"
    if progress > 0:
        return "IN_PROGRESS"
    return "PENDING"


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(db: Database = Depends(get_db), now: datetime = Depends(get_now)):
    solved = db["question"].count_documents({"is_solved": True})
    total_questions = db["question"].count_documents({})
    due = db["question"].count_documents(due_filter(now))
    notes = db["document"].count_documents({"type": "note"})
    total_files = db["node"].count_documents({"type": "file"})
    completed_files = db["node"].count_documents({"type": "file", "progress": 100})

    metrics = [
        Metric(title="Notes Taken", value=notes),
        Metric(title="Notebook Files", value=total_files),
        Metric(title="Files Completed", value=completed_files),
        Metric(title="DSA Problems Solved", value=solved),
        Metric(title="Total DSA Problems", value=total_questions),
        Metric(title="Reviews Due", value=due),
    ]

    insights = []
    if solved == 0:
        insights.append(Insight(message="You haven't solved any DSA problems recently, try a new challenge!"))
    rate = (completed_files / total_files) * 100 if total_files else 0
    insights.append(Insight(message=f"You have completed {rate:.2f}% of your notebook files."))

    notifications = []
    stamp = iso(now)
    if due:
        notifications.append(Notification(id="reviews", message=f"{due} questions are due for review.", timestamp=stamp))
    week_ago = iso(now - timedelta(days=7))
    if db["question"].count_documents({"created_at": {"$gte": week_ago}}):
        notifications.append(Notification(id="new-problems", message="New DSA problems have been added! Check them out.", timestamp=stamp))

    return DashboardResponse(metrics=metrics, insights=insights, notifications=notifications)


@router.get("/syllabus", response_model=List[SyllabusStatus])
def syllabus_overview(db: Database = Depends(get_db)):
    docs = db["node"].find({"type": "syllabus", "parent_id": None}).sort("_id", ASCENDING)
    return [
        SyllabusStatus(
            id=d["node_id"],
            topic=d["title"],
            status=syllabus_status(d.get("progress", 0)),
            progress=d.get("progress", 0),
            last_updated=d.get("updated_at"),
        )
        for d in docs
    ]
