import math
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from helpdesk.core.config import settings

class ErrorInfo(BaseModel):
    msg: str
    code: str
    details: Optional[Dict[str, Any]] = None

class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    errors: List[ErrorInfo] = []

class MessageResponse(BaseModel):
    success: bool = True
    message: str

class PageParams(BaseModel):
    """Page/limit pair as received from the query string."""
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=settings.default_page_size, ge=1, le=settings.max_page_size)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, total: int, params: PageParams) -> "Pagination":
        return cls(
            page=params.page,
            limit=params.limit,
            total=total,
            total_pages=math.ceil(total / params.limit) if total else 0,
        )
