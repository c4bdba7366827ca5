from __future__ import annotations

import sqlite3
import tempfile
import unittest
from pathlib import Path

from blog_feed.credentials import (
    Credentials,
    MemoryCredentialStore,
    SQLiteCredentialStore,
    extract_tokens,
    looks_like_token,
)


class TestTokenShape(unittest.TestCase):
    def test_three_non_empty_segments(self) -> None:
        self.assertTrue(looks_like_token("a.b.c"))
        self.assertTrue(looks_like_token(" aaa.bbb.ccc "))
        self.assertFalse(looks_like_token("a.b"))
        self.assertFalse(looks_like_token("a..c"))
        self.assertFalse(looks_like_token("a.b.c.d"))
        self.assertFalse(looks_like_token(""))
        self.assertFalse(looks_like_token(None))

    def test_extract_tokens_shapes(self) -> None:
        self.assertEqual(extract_tokens({"accessToken": "a.b.c"}), ("a.b.c", None))
        self.assertEqual(
            extract_tokens({"success": True, "data": {"token": "a.b.c", "refreshToken": "r.r.r"}}),
            ("a.b.c", "r.r.r"),
        )
        self.assertEqual(extract_tokens({"data": {"accessToken": "  "}}), (None, None))
        self.assertEqual(extract_tokens(["a.b.c"]), (None, None))


class TestMemoryStore(unittest.TestCase):
    def test_set_access_token_keeps_refresh_and_user(self) -> None:
        store = MemoryCredentialStore(
            Credentials(access_token="a.a.a", refresh_token="r.r.r", user={"id": "u1"})
        )
        store.set_access_token("b.b.b")

        creds = store.get()
        self.assertEqual(creds.access_token, "b.b.b")
        self.assertEqual(creds.refresh_token, "r.r.r")
        self.assertEqual(creds.user, {"id": "u1"})

        store.clear()
        self.assertTrue(store.get().is_empty)


class TestSQLiteStore(unittest.TestCase):
    def test_round_trip_persists_across_reopen(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            db_path = Path(td) / "nested" / "credentials.sqlite"

            with SQLiteCredentialStore.open(db_path) as store:
                self.assertTrue(store.get().is_empty)
                store.set(
                    Credentials(
                        access_token="a.a.a",
                        refresh_token="r.r.r",
                        user={"id": "u1", "role": "reader"},
                    )
                )

            with SQLiteCredentialStore.open(db_path) as store:
                creds = store.get()
                self.assertEqual(creds.access_token, "a.a.a")
                self.assertEqual(creds.refresh_token, "r.r.r")
                self.assertEqual(creds.user, {"id": "u1", "role": "reader"})

    def test_set_access_token_upserts_and_rotates(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            with SQLiteCredentialStore.open(Path(td) / "c.sqlite") as store:
                store.set(Credentials(access_token="a.a.a", refresh_token="r.r.r"))

                store.set_access_token("b.b.b")
                self.assertEqual(store.get().access_token, "b.b.b")
                self.assertEqual(store.get().refresh_token, "r.r.r")

                store.set_access_token("c.c.c", refresh_token="s.s.s")
                self.assertEqual(store.get().refresh_token, "s.s.s")

    def test_clear_removes_all_three_keys(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            db_path = Path(td) / "c.sqlite"
            with SQLiteCredentialStore.open(db_path) as store:
                store.set(Credentials(access_token="a.a.a", refresh_token="r.r.r", user={"id": "u1"}))
                store.clear()
                self.assertTrue(store.get().is_empty)

            conn = sqlite3.connect(str(db_path))
            try:
                count = conn.execute("SELECT COUNT(*) FROM client_storage").fetchone()[0]
                versions = [r[0] for r in conn.execute("SELECT version FROM schema_migrations")]
            finally:
                conn.close()

        self.assertEqual(count, 0)
        self.assertEqual(versions, [1])

    def test_corrupt_user_json_is_ignored(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            db_path = Path(td) / "c.sqlite"
            with SQLiteCredentialStore.open(db_path) as store:
                store.set(Credentials(access_token="a.a.a"))

            conn = sqlite3.connect(str(db_path))
            try:
                with conn:
                    conn.execute(
                        "INSERT INTO client_storage(key, value, updated_at) VALUES ('user', '{oops', 'x')"
                    )
            finally:
                conn.close()

            with SQLiteCredentialStore.open(db_path) as store:
                creds = store.get()

        self.assertEqual(creds.access_token, "a.a.a")
        self.assertIsNone(creds.user)


if __name__ == "__main__":
    unittest.main()
