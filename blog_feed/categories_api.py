from __future__ import annotations

from .errors import ApiError
from .event_log import EventLogger
from .http_client import ApiClient
from .normalize import categories_from_response
from .post import Category

DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category(id="bacteriology", name="Bacteriology", slug="bacteriology"),
    Category(id="virology", name="Virology", slug="virology"),
    Category(id="mycology", name="Mycology", slug="mycology"),
    Category(id="immunology", name="Immunology", slug="immunology"),
    Category(id="microbial-genetics", name="Microbial Genetics", slug="microbial-genetics"),
    Category(
        id="environmental-microbiology",
        name="Environmental Microbiology",
        slug="environmental-microbiology",
    ),
    Category(
        id="industrial-microbiology",
        name="Industrial Microbiology",
        slug="industrial-microbiology",
    ),
    Category(id="medical-microbiology", name="Medical Microbiology", slug="medical-microbiology"),
)


class CategoriesApi:
    def __init__(self, client: ApiClient, *, logger: EventLogger | None = None) -> None:
        self._client = client
        self._logger = logger

    def get_categories(self) -> list[Category]:
        return categories_from_response(self._client.get("/categories"))

    def display_categories(self) -> list[Category]:
        """Backend categories, or the built-in defaults when there are none."""
        try:
            categories = self.get_categories()
        except ApiError as e:
            if self._logger is not None:
                self._logger.warning("categories_failed", error=str(e))
            categories = []
        return categories or list(DEFAULT_CATEGORIES)
