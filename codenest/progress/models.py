import datetime as dt
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

# ==================== ENUMS ====================

class Language(str, Enum):
    PYTHON = "python"
    JAVA = "java"
    JAVASCRIPT = "javascript"
    CPP = "cpp"
    C = "c"

class ErrorKind(str, Enum):
    COMPILE_ERROR = "compile_error"
    RUNTIME_ERROR = "runtime_error"
    TIME_LIMIT = "time_limit"
    SERVICE_ERROR = "service_error"

class TopicState(str, Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    COMPLETED = "completed"

# ==================== PROGRESS RECORD ====================

class ActivityLogEntry(BaseModel):
    date: dt.date
    submissions: int = 0
    points: int = 0

    @field_serializer("date")
    def serialize_date(self, value: dt.date) -> str:
        return value.isoformat()

class SkillMetrics(BaseModel):
    syntax: int = 0
    logic: int = 0
    data_structures: int = 0
    optimization: int = 0

class Badge(BaseModel):
    name: str
    icon: Optional[str] = None
    earned_at: dt.datetime

class ProgressRecord(BaseModel):
    """
    Gamification state for one user, stored as a single document.
    `version` guards the optimistic read-modify-write in update_progress.
    """
    user_id: str
    username: Optional[str] = None
    xp: int = 0
    level: int = 1
    streak: int = 0
    longest_streak: int = 0
    last_activity_date: Optional[dt.date] = None
    activity_logs: List[ActivityLogEntry] = []
    completed_topics: List[int] = []
    skill_metrics: SkillMetrics = Field(default_factory=SkillMetrics)
    badges: List[Badge] = []
    version: int = 0
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @field_serializer("last_activity_date")
    def serialize_last_activity_date(self, value: Optional[dt.date]) -> Optional[str]:
        return value.isoformat() if value else None

    @classmethod
    def from_document(cls, doc: dict) -> "ProgressRecord":
        return cls.model_validate({k: v for k, v in doc.items() if k != "_id"})

    def to_document(self) -> dict:
        """Mongo-ready fields; version is owned by the store's $inc"""
        return self.model_dump(exclude={"version"})

# ==================== TOPICS ====================

class TopicTestCase(BaseModel):
    input: str = ""
    expected_output: str
    description: Optional[str] = None

class Topic(BaseModel):
    order: int = Field(..., ge=1)
    title: str
    description: str = ""
    problem_statement: Optional[str] = None
    starter_code: Optional[str] = None
    test_cases: List[TopicTestCase] = []

    @classmethod
    def from_document(cls, doc: dict) -> "Topic":
        return cls.model_validate({k: v for k, v in doc.items() if k != "_id"})

# ==================== REQUEST MODELS ====================

class _CamelRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

class ExecuteRequest(_CamelRequest):
    code: str
    language: Language
    input: str = ""

    @field_validator("code")
    @classmethod
    def validate_source(cls, v):
        if len(v.encode("utf-8")) > 100 * 1024:
            raise ValueError("Source code too large (max 100KB)")
        return v

class SubmitTestSuiteRequest(ExecuteRequest):
    topic_order: int = Field(..., alias="topicOrder", ge=1)

class CompleteTopicRequest(_CamelRequest):
    topic_order: int = Field(..., alias="topicOrder", ge=1)
    topic_title: str = Field(..., alias="topicTitle", min_length=1)

class SkillUpdateRequest(_CamelRequest):
    syntax: Optional[int] = None
    logic: Optional[int] = None
    data_structures: Optional[int] = Field(None, alias="dataStructures")
    optimization: Optional[int] = None

class BadgeRequest(BaseModel):
    name: str = Field(..., min_length=1)
    icon: Optional[str] = None
