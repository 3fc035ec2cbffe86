"""
Database Schemas

MongoDB collection schemas for the study notebook, as Pydantic models.
Model name is converted to lowercase (snake case) for the collection name:
- Node -> "node" collection
- Question -> "question" collection
- Solution -> "solution" collection
- Document -> "document" collection
- ActivityLog -> "activity_log" collection
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

NodeType = Literal["syllabus", "folder", "file"]
Difficulty = Literal["Easy", "Medium", "Hard"]
Mastery = Literal["untouched", "attempted", "solved", "understood", "mastered"]

CONTAINER_TYPES = ("syllabus", "folder")


class Node(BaseModel):
    """
    Notebook entries, stored flat and linked by parent_id
    Collection name: "node"
    """
    node_id: str = Field(..., description="Stringified ObjectId, immutable")
    title: str = Field(..., min_length=1)
    type: NodeType
    parent_id: Optional[str] = Field(None, description="node_id of the parent, null at root level")
    content: Optional[str] = Field(None, description="Text/HTML payload, files only")
    resource_type: Optional[str] = Field(None, description="Content shape, e.g. text or fileAnalysis")
    tags: List[str] = []
    pinned: bool = False
    progress: int = Field(0, ge=0, le=100)
    prerequisites: List[str] = Field(default_factory=list, description="Advisory node_id list")
    last_studied: Optional[str] = Field(None, description="ISO timestamp of the last activity beacon")
    source_file: Optional[str] = Field(None, description="Import source, if imported")


class Question(BaseModel):
    """
    DSA practice questions
    Collection name: "question"
    """
    sno: int = Field(..., ge=1)
    topic: str
    subtopic: str = ""
    pattern: str = ""
    problem: str
    description: str = ""
    difficulty: Difficulty = "Easy"
    link: str = ""
    tags: List[str] = []
    is_solved: bool = Field(False, description="Legacy flag kept alongside mastery")
    solved_by: str = ""
    code: str = ""
    mastery: Mastery = "untouched"
    last_practiced: Optional[str] = None
    next_review: Optional[str] = None
    inline_notes: str = ""
    time_spent_minutes: int = 0


class Solution(BaseModel):
    """Versioned code submissions for a question"""
    question_id: str = Field(..., description="Question id (stringified ObjectId)")
    code: str
    language: str = "python"
    version: int = Field(..., ge=1)
    time_complexity: Optional[str] = None
    space_complexity: Optional[str] = None
    duration: int = Field(0, ge=0, description="Seconds spent")
    solved_by: str = ""


class Document(BaseModel):
    """Free-standing notes attached to legacy topic ids"""
    topic_id: str
    type: Literal["note", "ai", "doc"] = "note"
    title: str = ""
    content: str = ""


class ActivityLog(BaseModel):
    """Study time per node, written by the activity beacon"""
    node_id: str
    duration: int = Field(..., gt=0, description="Seconds")
    timestamp: str
