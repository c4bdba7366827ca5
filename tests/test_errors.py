from __future__ import annotations

import unittest

from blog_feed.errors import ApiError, ConfigError, SessionExpiredError, classify_error


class TestClassifyError(unittest.TestCase):
    def test_status_codes(self) -> None:
        cases = {
            400: "validation",
            422: "validation",
            401: "auth_expired",
            403: "forbidden",
            404: "not_found",
            408: "transient",
            429: "transient",
            502: "transient",
            409: "unknown",
        }
        for code, kind in cases.items():
            with self.subTest(code=code):
                self.assertEqual(classify_error(ApiError("x", status_code=code)), kind)

    def test_transport_and_session(self) -> None:
        self.assertEqual(classify_error(ApiError("offline")), "transient")
        self.assertEqual(classify_error(TimeoutError()), "transient")
        self.assertEqual(classify_error(SessionExpiredError("gone", status_code=401)), "auth_expired")
        self.assertEqual(classify_error(ConfigError("bad")), "unknown")


if __name__ == "__main__":
    unittest.main()
