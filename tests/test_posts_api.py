from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from blog_feed.categories_api import DEFAULT_CATEGORIES, CategoriesApi
from blog_feed.credentials import Credentials, MemoryCredentialStore
from blog_feed.errors import StorageError
from blog_feed.event_log import EventLogger
from blog_feed.posts_api import PostsApi

from fakes import Recorder, make_client

_POST = {
    "_id": "p9",
    "title": "Phage Therapy Revisited",
    "author": {"firstName": "Ada", "lastName": "Okafor"},
    "category": {"_id": "c1", "name": "Virology", "slug": "virology"},
    "createdAt": "2024-05-01T00:00:00Z",
    "views": 3,
}


class TestPostsApi(unittest.TestCase):
    def test_get_posts_drops_empty_params_and_reads_totals(self) -> None:
        rec = Recorder(
            {
                ("GET", "/posts"): (
                    200,
                    {"success": True, "data": {"posts": [_POST], "total": 12, "totalPages": 2}},
                )
            }
        )
        page = PostsApi(make_client(rec)).get_posts(limit=50, category=None, search="")

        self.assertEqual(dict(rec.requests[0].url.params), {"limit": "50"})
        self.assertEqual([p.id for p in page.posts], ["p9"])
        self.assertEqual(page.total, 12)
        self.assertEqual(page.total_pages, 2)

    def test_get_post_unwraps_envelope(self) -> None:
        rec = Recorder({("GET", "/posts/p9"): (200, {"success": True, "data": {"post": _POST}})})
        post = PostsApi(make_client(rec)).get_post("p9")
        self.assertIsNotNone(post)
        self.assertEqual(post.author.full_name, "Ada Okafor")

    def test_featured_and_comments_degrade_to_empty(self) -> None:
        rec = Recorder(
            {
                ("GET", "/posts/featured"): (500, {"message": "boom"}),
                ("GET", "/posts/p9/comments"): (500, {"message": "boom"}),
            }
        )
        api = PostsApi(make_client(rec))
        self.assertEqual(api.get_featured(), [])
        self.assertEqual(api.get_post_comments("p9"), [])

    def test_popular_accepts_bare_list(self) -> None:
        rec = Recorder({("GET", "/posts/popular"): (200, {"success": True, "data": [_POST]})})
        self.assertEqual([p.id for p in PostsApi(make_client(rec)).get_popular()], ["p9"])

    def test_suggestion_failure_is_reported_then_collapsed(self) -> None:
        rec = Recorder({("GET", "/posts/search/suggestions"): (500, {"message": "boom"})})

        with tempfile.TemporaryDirectory() as td:
            log_path = Path(td) / "events.jsonl"
            with EventLogger.open(log_path) as log:
                api = PostsApi(make_client(rec), logger=log)
                result = api.fetch_search_suggestions("vi")
                self.assertFalse(result.ok)
                self.assertEqual(result.or_empty(), [])
                self.assertEqual(api.get_search_suggestions("vi"), [])
            text = log_path.read_text(encoding="utf-8")

        self.assertIn('"event":"suggestions_failed"', text)

    def test_unreadable_credentials_collapse_suggestions(self) -> None:
        class _BrokenStore(MemoryCredentialStore):
            def get(self) -> Credentials:
                raise StorageError("database is locked")

        rec = Recorder({("GET", "/posts/search/suggestions"): (200, {"data": {"suggestions": []}})})
        api = PostsApi(make_client(rec, store=_BrokenStore()))

        result = api.fetch_search_suggestions("vi")

        self.assertIsInstance(result.error, StorageError)
        self.assertEqual(api.get_search_suggestions("vi"), [])
        self.assertEqual(rec.requests, [])

    def test_search_posts_passes_query(self) -> None:
        rec = Recorder({("GET", "/posts/search"): (200, {"data": {"posts": [_POST]}})})
        posts = PostsApi(make_client(rec)).search_posts("phage", page=1)
        self.assertEqual(rec.requests[0].url.params.get("q"), "phage")
        self.assertEqual(len(posts), 1)


class TestCategoriesApi(unittest.TestCase):
    def test_nested_categories_shape(self) -> None:
        rec = Recorder(
            {
                ("GET", "/categories"): (
                    200,
                    {"data": {"categories": [{"_id": "c1", "name": "Virology", "slug": "virology"}]}},
                )
            }
        )
        cats = CategoriesApi(make_client(rec)).display_categories()
        self.assertEqual([c.slug for c in cats], ["virology"])

    def test_empty_or_failed_falls_back_to_defaults(self) -> None:
        empty = Recorder({("GET", "/categories"): (200, {"success": True, "data": []})})
        failed = Recorder({("GET", "/categories"): (503, {"message": "down"})})

        self.assertEqual(CategoriesApi(make_client(empty)).display_categories(), list(DEFAULT_CATEGORIES))
        self.assertEqual(CategoriesApi(make_client(failed)).display_categories(), list(DEFAULT_CATEGORIES))


if __name__ == "__main__":
    unittest.main()
