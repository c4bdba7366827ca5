"""
In-memory text matching over posts.

Ranking follows the usual match-sorter ladder and keeps everything at or
above the CONTAINS threshold, so the matched set is exactly the posts whose
active fields contain the query case-insensitively:

    CASE_SENSITIVE_EQUAL > EQUAL > STARTS_WITH > WORD_STARTS_WITH > CONTAINS

Results are ordered by best rank across the active fields; equal ranks keep
their input order.
"""

from __future__ import annotations

from typing import Callable, Iterable, Mapping, Sequence

from .filter_state import SearchType
from .post import Post

CASE_SENSITIVE_EQUAL = 7
EQUAL = 6
STARTS_WITH = 5
WORD_STARTS_WITH = 4
CONTAINS = 3
NO_MATCH = 0

RankFn = Callable[[str, str], int]
FallbackFn = Callable[[BaseException], None]

FIELD_GROUPS: Mapping[str, tuple[str, ...]] = {
    "all": ("title", "excerpt", "content", "tags", "author", "category"),
    "title": ("title",),
    "author": ("author",),
    "content": ("content", "excerpt"),
    "tags": ("tags",),
}


def searchable_fields(post: Post) -> dict[str, str]:
    author = post.author
    return {
        "title": post.title or "",
        "excerpt": post.excerpt or "",
        "content": post.content or "",
        "tags": " ".join(t for t in (post.tags or ()) if isinstance(t, str)),
        "author": f"{author.first_name or ''} {author.last_name or ''}" if author else "",
        "category": (post.category.name or "") if post.category else "",
    }


def rank_text(value: str, query: str) -> int:
    if not query:
        return NO_MATCH
    if value == query:
        return CASE_SENSITIVE_EQUAL

    v = value.casefold()
    q = query.casefold()

    if v == q:
        return EQUAL
    if v.startswith(q):
        return STARTS_WITH
    if f" {q}" in v:
        return WORD_STARTS_WITH
    if q in v:
        return CONTAINS
    return NO_MATCH


def rank_posts(
    posts: Sequence[Post],
    query: str,
    search_type: SearchType,
    *,
    rank_fn: RankFn = rank_text,
    threshold: int = CONTAINS,
) -> list[Post]:
    keys = FIELD_GROUPS[search_type]

    ranked: list[tuple[int, int, Post]] = []
    for index, post in enumerate(posts):
        fields = searchable_fields(post)
        best = max(rank_fn(fields[k], query) for k in keys)
        if best >= threshold:
            ranked.append((best, index, post))

    ranked.sort(key=lambda item: (-item[0], item[1]))
    return [post for _, _, post in ranked]


def _haystack(post: Post) -> str:
    try:
        return " ".join(searchable_fields(post).values()).casefold()
    except Exception:
        parts: Iterable[object] = (
            getattr(post, "title", ""),
            getattr(post, "excerpt", ""),
            getattr(post, "content", ""),
        )
        return " ".join(str(p or "") for p in parts).casefold()


def substring_filter(posts: Sequence[Post], query: str) -> list[Post]:
    """Case-insensitive substring test across every searchable field."""
    q = query.casefold()
    return [post for post in posts if q in _haystack(post)]


def match_posts(
    posts: Sequence[Post],
    query: str,
    search_type: SearchType,
    *,
    rank_fn: RankFn = rank_text,
    on_fallback: FallbackFn | None = None,
) -> list[Post]:
    """
    Rank posts against the query; on ranking failure fall back to a plain
    substring filter across all fields.
    """
    q = (query or "").strip()
    if not q:
        return list(posts)

    try:
        return rank_posts(posts, q, search_type, rank_fn=rank_fn)
    except Exception as e:
        if on_fallback is not None:
            on_fallback(e)
        return substring_filter(posts, q)
