"""
Database Schemas for CreatorFlow

Each Pydantic model represents a collection in MongoDB. The collection name
is the lowercase of the class name (e.g., Client -> "client").

Documents are validated here before every write: on create, and on update by
re-validating the stored document merged with the changes. Fields such as
_id, created_at and updated_at are injected by the database helpers.
"""
from datetime import datetime, timezone
from typing import Annotated, Optional, List, Dict, Any, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator

ThemePreference = Literal["light", "dark", "system"]
ProjectStatus = Literal["Idea", "Scripted", "Shot", "Edited", "Posted"]
TaskPriority = Literal["low", "medium", "high"]
HistoryType = Literal["client", "project", "task", "payment", "system", "other"]

THEME_PREFERENCES = ("light", "dark", "system")
PROJECT_STATUSES = ("Idea", "Scripted", "Shot", "Edited", "Posted")
TASK_PRIORITIES = ("low", "medium", "high")
HISTORY_TYPES = ("client", "project", "task", "payment", "system", "other")

HISTORY_CONTENT_MAX = 2000

Caption = Annotated[str, StringConstraints(strip_whitespace=True, max_length=500)]
Hashtag = Annotated[str, StringConstraints(strip_whitespace=True, max_length=50)]


def utcnow() -> datetime:
    """Current time as naive UTC, the form MongoDB hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def is_overdue(paid: bool, due_date: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """A payment is overdue when it is unpaid and its due date has passed."""
    if paid or due_date is None:
        return False
    return to_naive_utc(due_date) < to_naive_utc(now or utcnow())


class Document(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class User(Document):
    """
    Users collection schema
    Passwords are stored as bcrypt hashes, never in clear.
    """
    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    email: EmailStr = Field(..., description="Email address (unique, lower-cased)")
    password_hash: str = Field(..., description="BCrypt hash of the user's password")
    theme_preference: ThemePreference = Field("system", description="UI theme")

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.lower()


class ClientLink(Document):
    platform: Optional[str] = None
    url: Optional[str] = Field(None, pattern=r"^https?://.+")


class Client(Document):
    """
    A creator's client (brand, agency, channel owner)
    """
    user_id: str
    name: str = Field(..., min_length=2, max_length=100)
    niche: str = Field(..., min_length=1, max_length=50)
    links: List[ClientLink] = Field(default_factory=list, max_length=10)
    payment_rate: float = Field(..., ge=0)
    notes: str = Field("", max_length=2000)


class Project(Document):
    """
    A piece of content moving across the planner board
    """
    user_id: str
    client_id: Optional[str] = None
    title: str = Field(..., min_length=3, max_length=200)
    script: str = Field("", max_length=10000)
    captions: List[Caption] = Field(default_factory=list, max_length=50)
    hashtags: List[Hashtag] = Field(default_factory=list, max_length=30)
    status: ProjectStatus = "Idea"
    planned_date: Optional[datetime] = None

    @field_validator("planned_date")
    @classmethod
    def normalize_dates(cls, value):
        return to_naive_utc(value)


class Task(Document):
    user_id: str
    project_id: Optional[str] = None
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field("", max_length=2000)
    due_date: datetime
    priority: TaskPriority = "medium"
    completed: bool = False

    @field_validator("due_date")
    @classmethod
    def normalize_dates(cls, value):
        return to_naive_utc(value)


class Payment(Document):
    user_id: str
    client_id: str
    amount: float = Field(..., gt=0)
    due_date: datetime
    paid: bool = False
    paid_at: Optional[datetime] = None

    @field_validator("due_date", "paid_at")
    @classmethod
    def normalize_dates(cls, value):
        return to_naive_utc(value)


class Media(Document):
    """
    Metadata mirrored from the image host; the bytes live on the CDN.
    """
    user_id: str
    url: str = Field(..., min_length=1)
    public_id: str = Field(..., min_length=1)
    filename: Optional[str] = None
    mime_type: Optional[str] = None
    size: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None


class History(Document):
    """
    Append-only log of user actions (AI generations, resource changes)
    """
    user_id: str
    type: HistoryType
    content: str = Field(..., min_length=1, max_length=HISTORY_CONTENT_MAX)
    metadata: Dict[str, Any] = Field(default_factory=dict)
