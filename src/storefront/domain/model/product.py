"""Catalog documents: products and categories.

Products live in the document store and describe how an item is shown:
name, copy, images, specs, flags and embedded reviews. The price here is
cosmetic and the stock level is a mirror of the inventory ledger; neither
is ever used for a transaction.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from storefront.domain.exceptions import ValidationError


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Review:
    user_id: str
    rating: int
    comment: str
    date: datetime = field(default_factory=_now)

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValidationError("Review user_id is required")
        if not 1 <= self.rating <= 5:
            raise ValidationError("Review rating must be between 1 and 5")
        if not self.comment or not self.comment.strip():
            raise ValidationError("Review comment is required")


@dataclass
class Category:
    category_id: str
    name: str
    short_label: str
    color_hex: str = "#000000"
    is_popular: bool = False
    sort_order: int = 0


@dataclass
class CatalogProduct:
    """Display record keyed by the same ``product_id`` as the inventory row."""

    product_id: str
    category_id: str
    name: str
    description: str
    price_display: Decimal
    images: list[str] = field(default_factory=list)
    technical_specs: dict[str, str] = field(default_factory=dict)
    display_flags: list[str] = field(default_factory=list)
    reviews: list[Review] = field(default_factory=list)
    stock_level: int | None = None  # mirror of the inventory ledger
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    # Fields an admin may edit through a details update.
    EDITABLE_FIELDS = (
        "category_id",
        "name",
        "description",
        "images",
        "technical_specs",
        "display_flags",
    )

    def apply_changes(self, changes: dict[str, Any]) -> None:
        """Apply a partial details update, normalizing each field."""
        unknown = set(changes) - set(self.EDITABLE_FIELDS)
        if "product_id" in unknown:
            raise ValidationError("product_id cannot be changed")
        if unknown:
            raise ValidationError(f"Unknown product fields: {', '.join(sorted(unknown))}")

        if "name" in changes:
            name = str(changes["name"] or "").strip()
            if not name:
                raise ValidationError("Product name is required")
            self.name = name
        if "category_id" in changes:
            self.category_id = str(changes["category_id"] or "").strip()
        if "description" in changes:
            self.description = str(changes["description"] or "")
        if "images" in changes:
            self.images = normalize_string_list(changes["images"])
        if "technical_specs" in changes:
            self.technical_specs = normalize_specs(changes["technical_specs"])
        if "display_flags" in changes:
            self.display_flags = normalize_string_list(changes["display_flags"])
        self.updated_at = _now()


# ---------------------------------------------------------------------------
# Normalization of loosely-typed admin input
# ---------------------------------------------------------------------------


def normalize_string_list(value: Any) -> list[str]:
    """``None`` -> ``[]``, scalar -> ``[scalar]``, list -> list of str."""
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def normalize_specs(value: Any) -> dict[str, str]:
    """Technical specs are a flat string map; anything else becomes a description."""
    if isinstance(value, dict):
        return {str(k): str(v) for k, v in value.items()}
    return {"description": "" if value is None else str(value)}


_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


def check_color_hex(value: str) -> str:
    if not isinstance(value, str) or not _HEX_COLOR.match(value):
        raise ValidationError(f"color_hex must look like '#1a2b3c', got {value!r}")
    return value
