"""Favorite listing snapshot."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class FavoriteItem:
    """Denormalized listing snapshot taken when the user bookmarks it."""

    id: str | int
    title: str
    price: float | None = None
    image: str | None = None
    category: str | None = None

    @property
    def key(self) -> str:
        return str(self.id)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "title": self.title}
        if self.price is not None:
            data["price"] = self.price
        if self.image is not None:
            data["image"] = self.image
        if self.category is not None:
            data["category"] = self.category
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FavoriteItem:
        price = data.get("price")
        return cls(
            id=data["id"],
            title=str(data.get("title", "")),
            price=float(price) if price is not None else None,
            image=data.get("image"),
            category=data.get("category"),
        )
