from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence

from .filter_state import DEFAULT_PAGE_SIZE, FilterState
from .normalize import post_from_api_item
from .post import Post
from .search import FallbackFn, RankFn, match_posts, rank_text


@dataclass(frozen=True)
class FilterResult:
    page_items: tuple[Post, ...]
    matched: tuple[Post, ...]
    total_matched: int
    total_pages: int
    page: int
    page_size: int


def _timestamp(value: str) -> float:
    if not isinstance(value, str):
        return 0.0
    text = value.strip()
    if not text:
        return 0.0
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return 0.0
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def _coerce_posts(posts: Iterable[Any]) -> list[Post]:
    out: list[Post] = []
    for item in posts:
        post = post_from_api_item(item)
        if post is not None:
            out.append(post)
    return out


def filter_by_category(posts: Sequence[Post], category: str | None) -> list[Post]:
    if not category:
        return list(posts)
    return [p for p in posts if p.category.id == category or p.category.slug == category]


def sort_posts(posts: Sequence[Post], sort_by: str) -> list[Post]:
    # sorted() is stable, so ties keep their relative order
    if sort_by == "oldest":
        return sorted(posts, key=lambda p: _timestamp(p.created_at))
    if sort_by == "popular":
        return sorted(posts, key=lambda p: -(p.views or 0))
    return sorted(posts, key=lambda p: -_timestamp(p.created_at))


def paginate(posts: Sequence[Post], page: int, page_size: int) -> tuple[Post, ...]:
    if page < 1 or page_size < 1:
        return ()
    start = (page - 1) * page_size
    return tuple(posts[start : start + page_size])


def apply_filters(
    posts: Iterable[Any],
    filters: FilterState,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
    rank_fn: RankFn = rank_text,
    on_fallback: FallbackFn | None = None,
) -> FilterResult:
    """
    Derive the visible page from the fetched post window and filter state.

    Steps: category filter, text match on the debounced query, stable sort,
    pagination. The page is not clamped; a page past the end is empty.
    """
    if page_size < 1:
        raise ValueError("page_size must be >= 1")

    selected = filter_by_category(_coerce_posts(posts), filters.category)
    selected = match_posts(
        selected,
        filters.debounced_query,
        filters.search_type,
        rank_fn=rank_fn,
        on_fallback=on_fallback,
    )
    matched = tuple(sort_posts(selected, filters.sort_by))

    return FilterResult(
        page_items=paginate(matched, filters.page, page_size),
        matched=matched,
        total_matched=len(matched),
        total_pages=math.ceil(len(matched) / page_size),
        page=filters.page,
        page_size=page_size,
    )
