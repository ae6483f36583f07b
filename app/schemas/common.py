from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.utils.pagination import PageResult


class PageMeta(BaseModel):
    """Navigation metadata shared by every list response (camelCase on the wire)."""
    total_count: int
    current_page: int
    total_pages: int
    next_cursor: Optional[str] = None
    prev_cursor: Optional[str] = None
    has_next: bool
    has_prev: bool

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @staticmethod
    def fields_from(page: PageResult) -> Dict[str, Any]:
        return {
            "total_count": page.total_count,
            "current_page": page.current_page,
            "total_pages": page.total_pages,
            "next_cursor": page.next_cursor,
            "prev_cursor": page.prev_cursor,
            "has_next": page.has_next,
            "has_prev": page.has_prev,
        }


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    details: Optional[Any] = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str
