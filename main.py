import logging
import os
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import CORS_ORIGINS, LOG_LEVEL, PORT
from database import close_client, ensure_indexes, get_db

from api_activity import router as activity_router
from api_dashboard import router as dashboard_router
from api_documents import router as documents_router
from api_notes import router as notes_router
from api_questions import router as questions_router

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("study_notebook")


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        ensure_indexes(get_db())
    except PyMongoError as e:
        # The API still starts; requests touching the database will fail until it is reachable
        logger.warning("Could not create indexes: %s", e)
    yield
    close_client()


app = FastAPI(title="Study Notebook API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(notes_router)
app.include_router(questions_router)
app.include_router(activity_router)
app.include_router(documents_router)
app.include_router(dashboard_router)


# ---------------------------
# Request logging & errors
# ---------------------------

@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = uuid.uuid4().hex[:8]
    request.state.request_id = request_id
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info("[%s] %s %s -> %s (%.1fms)", request_id, request.method, request.url.path, response.status_code, elapsed_ms)
    return response


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception):
    request_id = getattr(request.state, "request_id", "-")
    logger.exception("[%s] Unhandled error on %s %s", request_id, request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error", "request_id": request_id})


# ---------------------------
# Health & schema endpoints
# ---------------------------

@app.get("/")
def read_root():
    return {"message": "Study Notebook API"}


@app.get("/schema")
def get_schema():
    # Expose schemas to database viewer (if used)
    from schemas import ActivityLog, Document, Node, Question, Solution
    return {
        "node": Node.model_json_schema(),
        "question": Question.model_json_schema(),
        "solution": Solution.model_json_schema(),
        "document": Document.model_json_schema(),
        "activity_log": ActivityLog.model_json_schema(),
    }


@app.get("/test")
def test_database(db: Database = Depends(get_db)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": getattr(db, "name", None),
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        response["collections"] = db.list_collection_names()[:10]
        response["database"] = "✅ Connected & Working"
        response["connection_status"] = "Connected"
    except PyMongoError as e:
        response["database"] = f"⚠️  Connected but Error: {str(e)[:50]}"
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
