from __future__ import annotations

from dataclasses import replace
from threading import Lock
from typing import Any, Iterable

from .config_schema import FeedConfig
from .debounce import Debouncer, Scheduler
from .errors import ApiError
from .event_log import EventLogger
from .filter_state import FilterState, SearchType, SortBy
from .normalize import posts_from_items
from .pipeline import FilterResult, apply_filters
from .post import Post, Suggestion
from .posts_api import PostsApi

_SUGGESTION_SEARCH_TYPES: dict[str, SearchType] = {
    "author": "author",
    "title": "title",
    "tag": "tags",
}


class FeedController:
    """
    Owns the filter state transitions around the pure pipeline.

    Typing goes through a debounce timer before it reaches matching; facet
    changes and a settled query both reset the page to 1. `view()` returns
    the same FilterResult object until the posts or the state change.
    """

    def __init__(
        self,
        *,
        posts_api: PostsApi | None = None,
        feed: FeedConfig | None = None,
        scheduler: Scheduler | None = None,
        logger: EventLogger | None = None,
        posts: Iterable[Any] | None = None,
    ) -> None:
        self._feed = feed or FeedConfig()
        self._posts_api = posts_api
        self._logger = logger

        self._lock = Lock()
        self._state = FilterState()
        self._posts: tuple[Post, ...] = tuple(posts_from_items(posts or ()))
        self._posts_version = 0
        self._suggestions: tuple[Suggestion, ...] = ()
        self._last_error: ApiError | None = None

        self._memo_key: tuple[int, FilterState] | None = None
        self._memo: FilterResult | None = None

        self._debouncer: Debouncer[str] = Debouncer(
            self._feed.debounce_ms / 1000.0,
            self._on_query_settled,
            scheduler=scheduler,
        )

    @property
    def state(self) -> FilterState:
        with self._lock:
            return self._state

    @property
    def posts(self) -> tuple[Post, ...]:
        with self._lock:
            return self._posts

    @property
    def suggestions(self) -> tuple[Suggestion, ...]:
        with self._lock:
            return self._suggestions

    @property
    def last_error(self) -> ApiError | None:
        with self._lock:
            return self._last_error

    @property
    def has_active_filters(self) -> bool:
        return self.state.has_active_filters

    def close(self) -> None:
        self._debouncer.cancel()

    def set_posts(self, posts: Iterable[Any]) -> None:
        normalized = tuple(posts_from_items(posts))
        with self._lock:
            self._posts = normalized
            self._posts_version += 1

    def load_posts(self) -> tuple[Post, ...]:
        """Fetch the post window once; a failed fetch leaves an empty window."""
        if self._posts_api is None:
            raise RuntimeError("load_posts requires a PostsApi")

        try:
            page = self._posts_api.get_posts(limit=self._feed.fetch_limit)
        except ApiError as e:
            if self._logger is not None:
                self._logger.warning("posts_load_failed", status=e.status_code, error=str(e))
            with self._lock:
                self._last_error = e
            self.set_posts(())
            raise

        with self._lock:
            self._last_error = None
        self.set_posts(page.posts)
        return self.posts

    def set_query(self, text: str) -> None:
        """Record raw input and restart the debounce timer."""
        query = text or ""
        with self._lock:
            self._state = replace(self._state, query=query)
        self._debouncer.trigger(query)
        self.refresh_suggestions(query)

    def submit_query(self, text: str) -> None:
        """Apply a query immediately, bypassing the debounce delay."""
        self._debouncer.cancel()
        query = text or ""
        with self._lock:
            self._state = replace(self._state, query=query, debounced_query=query, page=1)
            self._suggestions = ()

    def flush_query(self) -> None:
        self._debouncer.flush()

    def refresh_suggestions(self, text: str) -> tuple[Suggestion, ...]:
        query = text or ""
        if self._posts_api is None or len(query) < self._feed.suggestion_min_chars:
            with self._lock:
                self._suggestions = ()
            return ()

        # no cancellation: whichever response lands last wins
        found = tuple(self._posts_api.get_search_suggestions(query))
        with self._lock:
            self._suggestions = found
        return found

    def apply_suggestion(self, suggestion: Suggestion) -> None:
        search_type = _SUGGESTION_SEARCH_TYPES.get(suggestion.type)
        with self._lock:
            state = replace(self._state, query=suggestion.value, page=1)
            if search_type is not None:
                state = replace(state, search_type=search_type)
            self._state = state
            self._suggestions = ()
        self._debouncer.trigger(suggestion.value)

    def set_category(self, category: str | None) -> None:
        with self._lock:
            self._state = replace(self._state, category=(category or None), page=1)

    def set_sort(self, sort_by: SortBy) -> None:
        with self._lock:
            self._state = replace(self._state, sort_by=sort_by, page=1)

    def set_search_type(self, search_type: SearchType) -> None:
        with self._lock:
            self._state = replace(self._state, search_type=search_type, page=1)

    def set_page(self, page: int) -> None:
        with self._lock:
            self._state = replace(self._state, page=int(page))

    def clear_filters(self) -> None:
        self._debouncer.cancel()
        with self._lock:
            self._state = FilterState()
            self._suggestions = ()

    def view(self) -> FilterResult:
        with self._lock:
            key = (self._posts_version, self._state)
            if self._memo is not None and self._memo_key == key:
                return self._memo

            result = apply_filters(
                self._posts,
                self._state,
                page_size=self._feed.page_size,
                on_fallback=self._log_fallback,
            )
            self._memo_key = key
            self._memo = result
            return result

    def _on_query_settled(self, query: str) -> None:
        with self._lock:
            self._state = replace(self._state, debounced_query=query, page=1)

    def _log_fallback(self, exc: BaseException) -> None:
        if self._logger is not None:
            self._logger.exception("search_fallback_used", exc=exc)
