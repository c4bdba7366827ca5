from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, get_args

SortBy = Literal["newest", "oldest", "popular"]
SearchType = Literal["all", "title", "author", "content", "tags"]

SORT_OPTIONS: tuple[str, ...] = get_args(SortBy)
SEARCH_TYPES: tuple[str, ...] = get_args(SearchType)

DEFAULT_PAGE_SIZE = 9


@dataclass(frozen=True)
class FilterState:
    """
    Immutable filter state fed to the pipeline.

    Only `debounced_query` is used for matching; `query` is the raw input
    that the debounce timer eventually copies into it.
    """

    query: str = ""
    debounced_query: str = ""
    category: str | None = None
    sort_by: SortBy = "newest"
    search_type: SearchType = "all"
    page: int = 1

    def __post_init__(self) -> None:
        if self.sort_by not in SORT_OPTIONS:
            raise ValueError(f"sort_by must be one of {', '.join(SORT_OPTIONS)}")
        if self.search_type not in SEARCH_TYPES:
            raise ValueError(f"search_type must be one of {', '.join(SEARCH_TYPES)}")
        if int(self.page) < 1:
            raise ValueError("page must be >= 1")

    @property
    def has_active_filters(self) -> bool:
        return bool(self.debounced_query or self.category or self.search_type != "all")
