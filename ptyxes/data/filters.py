"""
Feed search request model.

The UI passes the values of its search box, filter drop-downs, sort
drop-down and page controls. "All" (or an empty value) means "no
constraint" for every filter.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator

ALL = "All"

DEFAULT_PAGE_SIZE = 10


class TimeFilter(str, Enum):
    """Total-time buckets (preparation + cooking)."""
    ALL = "All"
    QUICK = "Quick"    # < 30 minutes
    MEDIUM = "Medium"  # 30-60 minutes inclusive
    LONG = "Long"      # > 60 minutes


class SortMode(str, Enum):
    """Feed orderings."""
    DATE = "Date"
    REPUTATION = "Reputation"
    PREPARATION_TIME = "Preparation Time"
    COOKING_TIME = "Cooking Time"
    UPVOTES = "Upvotes"

    @classmethod
    def parse(cls, value) -> "SortMode":
        """Unknown or missing sort modes fall back to newest first."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.DATE


def is_active(value: Optional[str]) -> bool:
    """True if a filter value constrains the result set."""
    return value is not None and value != "" and value != ALL


class PostFilters(BaseModel):
    """
    A feed search: filters, ordering and the page window.

    Validation rules:
    - page is zero-based and must be >= 0
    - page_size must be >= 1
    - unknown time filters are treated as "All"
    - unknown sort modes are treated as "Date"
    - a whitespace-only query means no text filter; other queries are kept as typed
    """
    query: Optional[str] = None
    difficulty: Optional[str] = None
    time_filter: TimeFilter = TimeFilter.ALL
    dietary_filter: Optional[str] = None
    sort_mode: SortMode = SortMode.DATE
    page: int = 0
    page_size: int = DEFAULT_PAGE_SIZE

    @field_validator("query", mode="before")
    @classmethod
    def blank_query(cls, v):
        """Whitespace-only means no text filter; anything else is matched as typed."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("difficulty", "dietary_filter", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("time_filter", mode="before")
    @classmethod
    def lenient_time_filter(cls, v):
        if v is None or isinstance(v, TimeFilter):
            return v or TimeFilter.ALL
        try:
            return TimeFilter(v)
        except ValueError:
            return TimeFilter.ALL

    @field_validator("sort_mode", mode="before")
    @classmethod
    def lenient_sort_mode(cls, v):
        return SortMode.parse(v)

    @field_validator("page")
    @classmethod
    def validate_page(cls, v: int) -> int:
        if v < 0:
            raise ValueError("page must be >= 0")
        return v

    @field_validator("page_size")
    @classmethod
    def validate_page_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("page_size must be >= 1")
        return v

    @property
    def offset(self) -> int:
        return self.page * self.page_size
