from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from helpdesk.models.knowledge import KnowledgeCategory
from helpdesk.schemas.auth import UserSummary
from helpdesk.core.schemas import Pagination


def _split_keywords(v: Union[str, List[str], None]) -> Optional[List[str]]:
    # Accept "a, b, c" as well as ["a", "b", "c"]
    if v is None:
        return None
    if isinstance(v, str):
        v = v.split(",")
    return [k.strip() for k in v if k and k.strip()]


def _not_blank(v: str, label: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError(f"{label} is required")
    return v


class ArticleCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1, max_length=5000)
    keywords: List[str] = []
    category: KnowledgeCategory = KnowledgeCategory.GENERAL

    @field_validator("title")
    @classmethod
    def title_present(cls, v: str) -> str:
        return _not_blank(v, "Title")

    @field_validator("content")
    @classmethod
    def content_present(cls, v: str) -> str:
        return _not_blank(v, "Content")

    @field_validator("keywords", mode="before")
    @classmethod
    def split_keywords(cls, v):
        return _split_keywords(v) or []


class ArticleUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    content: Optional[str] = Field(default=None, min_length=1, max_length=5000)
    keywords: Optional[List[str]] = None
    category: Optional[KnowledgeCategory] = None

    @field_validator("title")
    @classmethod
    def title_present(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _not_blank(v, "Title")

    @field_validator("content")
    @classmethod
    def content_present(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _not_blank(v, "Content")

    @field_validator("keywords", mode="before")
    @classmethod
    def split_keywords(cls, v):
        return _split_keywords(v)


class ArticleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    content: str
    keywords: List[str]
    category: KnowledgeCategory
    created_by: int
    creator: UserSummary
    helpful_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ArticleListResponse(BaseModel):
    success: bool = True
    data: List[ArticleResponse]
    pagination: Pagination


class HelpfulResponse(BaseModel):
    success: bool = True
    message: str = "Thank you for your feedback!"
    helpful_count: int
