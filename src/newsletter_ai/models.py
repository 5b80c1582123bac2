"""Data models for the newsletter curation service."""

from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, EmailStr, Field


class InvalidRequest(ValueError):
    """Client-supplied input that cannot be processed; reported as HTTP 400."""


class UserType(str, Enum):
    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class UserStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class NewsletterStatus(str, Enum):
    """Lifecycle of a generated newsletter."""

    NOT_SENT = "Not Sent"
    PENDING = "pending"
    APPROVED = "approved"
    SENT = "sent"
    DECLINED = "declined"


ALLOWED_TRANSITIONS: Dict[NewsletterStatus, FrozenSet[NewsletterStatus]] = {
    NewsletterStatus.NOT_SENT: frozenset({NewsletterStatus.PENDING}),
    NewsletterStatus.PENDING: frozenset({NewsletterStatus.APPROVED, NewsletterStatus.DECLINED}),
    NewsletterStatus.APPROVED: frozenset({NewsletterStatus.SENT}),
    NewsletterStatus.DECLINED: frozenset({NewsletterStatus.PENDING}),
    NewsletterStatus.SENT: frozenset(),
}


def check_transition(current: NewsletterStatus, target: NewsletterStatus) -> None:
    """Raise InvalidRequest unless ``current -> target`` is an allowed status change."""
    if current == target:
        return
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidRequest(
            f"Cannot change newsletter status from '{current.value}' to '{target.value}'."
        )


class NewsArticle(BaseModel):
    """Normalized representation of a news search result."""

    title: str
    description: Optional[str] = None
    content: Optional[str] = None
    url: str
    image_url: Optional[str] = None
    source_name: Optional[str] = None
    author: Optional[str] = None
    published_at: Optional[datetime] = Field(
        None, description="Publication timestamp; optional if unknown."
    )


class ArticleIn(BaseModel):
    """An article the admin picked from the news feed, possibly with an AI summary."""

    title: str = Field(..., min_length=1)
    summary: Optional[str] = None
    description: Optional[str] = None
    source_name: Optional[str] = None
    url: str = Field(..., min_length=1)
    image_url: Optional[str] = None
    published_at: Optional[datetime] = None


class SaveArticlesRequest(BaseModel):
    articles: List[ArticleIn] = Field(..., min_length=1)


class NewsletterArticle(BaseModel):
    """Curated article as selected for a newsletter."""

    id: Optional[str] = Field(None, description="Curated article id, when already saved.")
    title: str
    summary: Optional[str] = None
    source_name: Optional[str] = None
    category: Optional[str] = None
    original_url: Optional[str] = None
    image_url: Optional[str] = None


class GenerateNewsletterRequest(BaseModel):
    articles: List[NewsletterArticle] = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)


class SendNewsletterRequest(BaseModel):
    user_ids: List[str] = Field(..., min_length=1)


class SendToSelfRequest(BaseModel):
    newsletter_id: str = Field(..., min_length=1)


class StatusUpdateRequest(BaseModel):
    status: NewsletterStatus


class SummarizeRequest(BaseModel):
    text: str = ""


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=8)
    categories: List[str] = []


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    password: Optional[str] = None


class CategoriesUpdate(BaseModel):
    categories: List[str]


class CategoryCreate(BaseModel):
    name: str = ""


class AddUserRequest(BaseModel):
    name: str = ""
    email: str = ""
    categories: List[str] = []


class AdminCreate(BaseModel):
    name: str = ""
    email: str = ""
    password: str = ""
    categories: List[str] = []


class AdminUpdate(BaseModel):
    name: str
    email: EmailStr
    status: UserStatus = UserStatus.ACTIVE
    categories: List[str] = []
    password: Optional[str] = None


class CategoryMembership(BaseModel):
    user_id: str = ""
    category_name: str = ""


class CategoryMembers(BaseModel):
    user_ids: List[str] = []
    category: str = ""
