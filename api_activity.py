"""
Study-time tracking. The editor flushes pending durations with
navigator.sendBeacon, which posts a text/plain blob, so the beacon body is
parsed by hand instead of through a pydantic body parameter.
"""
import json
import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError
from pymongo.database import Database

from database import get_db
from schemas import ActivityLog
from utils import get_now, iso

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/logs", tags=["activity"])


@router.post("/beacon")
async def beacon(request: Request, db: Database = Depends(get_db), now: datetime = Depends(get_now)):
    raw = await request.body()
    try:
        body = json.loads(raw) if raw else {}
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Expected a JSON object")
    duration = body.get("duration", body.get("duration_seconds"))
    if not body.get("node_id") or not duration:
        raise HTTPException(status_code=400, detail="Missing node_id or duration")

    try:
        entry = ActivityLog(node_id=body["node_id"], duration=duration, timestamp=iso(now))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors()[0]["msg"])

    db["activity_log"].insert_one(entry.model_dump())
    db["node"].update_one({"node_id": entry.node_id}, {"$set": {"last_studied": entry.timestamp}})
    logger.debug("Logged %ss on node %s", entry.duration, entry.node_id)
    return {"message": "Logged"}


@router.get("/stats")
def activity_stats(db: Database = Depends(get_db)) -> Dict[str, int]:
    """Total seconds studied per UTC day, keyed YYYY-MM-DD."""
    totals: Dict[str, int] = defaultdict(int)
    for log in db["activity_log"].find({}, {"timestamp": 1, "duration": 1}):
        totals[log["timestamp"][:10]] += log.get("duration", 0)
    return dict(sorted(totals.items()))
