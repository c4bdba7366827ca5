from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence


@dataclass(frozen=True)
class Author:
    first_name: str = ""
    last_name: str = ""
    id: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class Category:
    id: str = ""
    name: str = ""
    slug: str = ""


@dataclass(frozen=True)
class Post:
    """A read-only post record as consumed by the filter pipeline."""

    id: str = ""
    title: str = ""
    excerpt: str = ""
    content: str = ""
    tags: Sequence[str] = ()
    author: Author = field(default_factory=Author)
    category: Category = field(default_factory=Category)
    created_at: str = ""
    views: int = 0
    likes: int = 0
    slug: str = ""
    status: str = ""


@dataclass(frozen=True)
class Suggestion:
    type: str
    value: str
    display: str
    extra: Mapping[str, Any] = field(default_factory=dict)
