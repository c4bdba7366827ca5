from __future__ import annotations

from typing import Any, Iterable, Mapping

from .post import Author, Category, Post, Suggestion


def _coerce_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    return ""


def _coerce_id(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return ""


def _coerce_count(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return 0
    if isinstance(value, list):
        # likes are sometimes sent as the list of liking user ids
        return len(value)
    return 0


def _coerce_tags(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        tag = value.strip()
        return (tag,) if tag else ()
    if isinstance(value, (list, tuple)):
        out: list[str] = []
        for item in value:
            if isinstance(item, str) and item.strip():
                out.append(item.strip())
        return tuple(out)
    return ()


def _coerce_author(value: Any) -> Author:
    if isinstance(value, Mapping):
        return Author(
            first_name=_coerce_str(value.get("firstName")),
            last_name=_coerce_str(value.get("lastName")),
            id=_coerce_id(value.get("_id")) or _coerce_id(value.get("id")),
        )
    # an unpopulated reference is just the author id
    return Author(id=_coerce_id(value))


def _coerce_category(value: Any) -> Category:
    if isinstance(value, Mapping):
        return Category(
            id=_coerce_id(value.get("_id")) or _coerce_id(value.get("id")),
            name=_coerce_str(value.get("name")),
            slug=_coerce_str(value.get("slug")),
        )
    return Category(id=_coerce_id(value))


def _clean_author(value: Any) -> Author:
    if isinstance(value, Author):
        return Author(
            first_name=_coerce_str(value.first_name),
            last_name=_coerce_str(value.last_name),
            id=_coerce_id(value.id),
        )
    return _coerce_author(value)


def _clean_category(value: Any) -> Category:
    if isinstance(value, Category):
        return Category(
            id=_coerce_id(value.id),
            name=_coerce_str(value.name),
            slug=_coerce_str(value.slug),
        )
    return _coerce_category(value)


def _clean_post(post: Post) -> Post:
    """Return `post` unchanged when well-typed, else a copy with coerced fields."""
    clean = Post(
        id=_coerce_id(post.id),
        title=_coerce_str(post.title),
        excerpt=_coerce_str(post.excerpt),
        content=_coerce_str(post.content),
        tags=_coerce_tags(post.tags),
        author=_clean_author(post.author),
        category=_clean_category(post.category),
        created_at=_coerce_str(post.created_at),
        views=_coerce_count(post.views),
        likes=_coerce_count(post.likes),
        slug=_coerce_str(post.slug),
        status=_coerce_str(post.status),
    )
    return post if clean == post else clean


def post_from_api_item(item: Any) -> Post | None:
    """
    Best-effort extraction of a Post from a backend JSON record.

    Missing or mistyped fields become empty strings / zero; Post instances
    with mistyped fields are rebuilt the same way. Returns None only when the
    item is neither a Post nor a mapping.
    """
    if isinstance(item, Post):
        return _clean_post(item)
    if not isinstance(item, Mapping):
        return None

    return Post(
        id=_coerce_id(item.get("_id")) or _coerce_id(item.get("id")),
        title=_coerce_str(item.get("title")),
        excerpt=_coerce_str(item.get("excerpt")),
        content=_coerce_str(item.get("content")),
        tags=_coerce_tags(item.get("tags")),
        author=_coerce_author(item.get("author")),
        category=_coerce_category(item.get("category")),
        created_at=_coerce_str(item.get("createdAt")) or _coerce_str(item.get("created_at")),
        views=_coerce_count(item.get("views")),
        likes=_coerce_count(item.get("likes")),
        slug=_coerce_str(item.get("slug")),
        status=_coerce_str(item.get("status")),
    )


def posts_from_items(items: Iterable[Any]) -> list[Post]:
    out: list[Post] = []
    for item in items:
        post = post_from_api_item(item)
        if post is not None:
            out.append(post)
    return out


def _unwrap_data(payload: Any) -> Any:
    if isinstance(payload, Mapping) and "data" in payload:
        return payload.get("data")
    return payload


def posts_from_response(payload: Any) -> list[Post]:
    """
    Extract posts from `{success, data: {posts: [...]}}` and the looser
    shapes the backend sends (`{data: [...]}`, a bare list).
    """
    data = _unwrap_data(payload)
    if isinstance(data, Mapping):
        data = data.get("posts")
    if not isinstance(data, list):
        return []
    return posts_from_items(data)


def categories_from_response(payload: Any) -> list[Category]:
    data = _unwrap_data(payload)
    if isinstance(data, Mapping):
        inner = data.get("categories")
        if inner is None:
            inner = data.get("posts")
        data = inner
    if not isinstance(data, list):
        return []

    out: list[Category] = []
    for item in data:
        if not isinstance(item, Mapping):
            continue
        category = _coerce_category(item)
        if category.id or category.slug:
            out.append(category)
    return out


def suggestion_from_item(item: Any) -> Suggestion | None:
    if not isinstance(item, Mapping):
        return None

    value = _coerce_str(item.get("value")).strip()
    if not value:
        return None

    kind = _coerce_str(item.get("type")).strip() or "other"
    display = _coerce_str(item.get("display")).strip() or value
    extra = {k: v for k, v in item.items() if k not in ("type", "value", "display")}

    return Suggestion(type=kind, value=value, display=display, extra=extra)


def suggestions_from_response(payload: Any) -> list[Suggestion]:
    data = _unwrap_data(payload)
    if isinstance(data, Mapping):
        data = data.get("suggestions")
    if not isinstance(data, list):
        return []

    out: list[Suggestion] = []
    for item in data:
        suggestion = suggestion_from_item(item)
        if suggestion is not None:
            out.append(suggestion)
    return out
