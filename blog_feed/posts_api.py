from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from .errors import ApiError, StorageError
from .event_log import EventLogger
from .http_client import ApiClient
from .normalize import posts_from_response, suggestions_from_response
from .post import Post, Suggestion


@dataclass(frozen=True)
class SuggestionsResult:
    """Outcome of a suggestions fetch: either suggestions or the error that replaced them."""

    suggestions: Sequence[Suggestion] = ()
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def or_empty(self) -> list[Suggestion]:
        return list(self.suggestions) if self.ok else []


@dataclass(frozen=True)
class PostsPage:
    posts: Sequence[Post]
    total: int
    total_pages: int


def _clean_params(params: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in params.items() if v is not None and v != ""}


def _int_field(data: Any, key: str, default: int) -> int:
    if isinstance(data, Mapping):
        val = data.get(key)
        if isinstance(val, int) and not isinstance(val, bool):
            return val
    return default


class PostsApi:
    """Post endpoints, returning normalized Post records."""

    def __init__(self, client: ApiClient, *, logger: EventLogger | None = None) -> None:
        self._client = client
        self._logger = logger

    def get_posts(self, **params: Any) -> PostsPage:
        """GET /posts with `page, limit, category, search, status, author` filters."""
        payload = self._client.get("/posts", params=_clean_params(params))
        posts = posts_from_response(payload)

        data = payload.get("data") if isinstance(payload, Mapping) else None
        total = _int_field(data, "total", len(posts))
        return PostsPage(
            posts=posts,
            total=total,
            total_pages=_int_field(data, "totalPages", 1 if posts else 0),
        )

    def get_post(self, post_id: str) -> Post | None:
        payload = self._client.get(f"/posts/{post_id}")
        data = payload.get("data") if isinstance(payload, Mapping) else None
        if isinstance(data, Mapping) and isinstance(data.get("post"), Mapping):
            data = data["post"]
        posts = posts_from_response([data])
        return posts[0] if posts else None

    def get_featured(self) -> list[Post]:
        return self._get_list_or_empty("/posts/featured", event="featured_posts_failed")

    def get_popular(self) -> list[Post]:
        return self._get_list_or_empty("/posts/popular", event="popular_posts_failed")

    def search_posts(self, query: str, **params: Any) -> list[Post]:
        payload = self._client.get(
            "/posts/search",
            params=_clean_params({"q": query, **params}),
        )
        return posts_from_response(payload)

    def fetch_search_suggestions(self, query: str, type: str = "all") -> SuggestionsResult:
        try:
            payload = self._client.get(
                "/posts/search/suggestions",
                params={"q": query, "type": type},
            )
        except (ApiError, StorageError) as e:
            if self._logger is not None:
                self._logger.warning(
                    "suggestions_failed",
                    query=query,
                    status=getattr(e, "status_code", None),
                    error=str(e),
                )
            return SuggestionsResult(error=e)
        return SuggestionsResult(suggestions=tuple(suggestions_from_response(payload)))

    def get_search_suggestions(self, query: str, type: str = "all") -> list[Suggestion]:
        """Suggestions for the search box; any failure collapses to an empty list."""
        return self.fetch_search_suggestions(query, type).or_empty()

    def like_post(self, post_id: str) -> Any:
        return self._client.post(f"/posts/{post_id}/like")

    def get_post_comments(self, post_id: str) -> list[dict[str, Any]]:
        try:
            payload = self._client.get(f"/posts/{post_id}/comments")
        except ApiError as e:
            if self._logger is not None:
                self._logger.warning("post_comments_failed", post_id=post_id, error=str(e))
            return []

        data = payload.get("data") if isinstance(payload, Mapping) else payload
        if isinstance(data, Mapping):
            data = data.get("comments")
        if not isinstance(data, list):
            return []
        return [dict(c) for c in data if isinstance(c, Mapping)]

    def get_author_posts(self, author_id: str, **params: Any) -> list[Post]:
        payload = self._client.get(f"/posts/author/{author_id}", params=_clean_params(params))
        return posts_from_response(payload)

    def get_related_posts(self, post_id: str) -> list[Post]:
        payload = self._client.get(f"/posts/{post_id}/related")
        return posts_from_response(payload)

    def _get_list_or_empty(self, path: str, *, event: str) -> list[Post]:
        try:
            payload = self._client.get(path)
        except ApiError as e:
            if self._logger is not None:
                self._logger.warning(event, path=path, error=str(e))
            return []
        return posts_from_response(payload)
