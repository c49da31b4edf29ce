"""
Category Catalog

The category taxonomy is STATIC. Users cannot add, rename or recolor
categories. Categories drive two things:
1. The icon tag stored on every transaction
2. The scope of a budget

Lookups never raise. Unknown category ids resolve to
miscellaneous-other, unknown icons resolve to DEFAULT_ICON.
"""

from types import MappingProxyType
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_CATEGORY_ID = "miscellaneous-other"
DEFAULT_ICON = "ShoppingBag"


class Category(BaseModel):
    """A single catalog entry."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)
    color: str = Field(..., pattern=r"^#[0-9a-fA-F]{6}$")
    icon: str = Field(..., min_length=1)


_CATALOG = (
    Category(id="utilities-bills", label="Utilities & Bills", color="#1f6f4d", icon="Zap"),
    Category(id="food-dining", label="Food & Dining", color="#2d9b6e", icon="Coffee"),
    Category(id="transportation", label="Transportation", color="#4db88a", icon="Truck"),
    Category(id="shopping-clothing", label="Shopping & Clothing", color="#7fcba4", icon="ShoppingBag"),
    Category(id="health-wellness", label="Health & Wellness", color="#a8d9be", icon="Heart"),
    Category(id="recreation-entertainment", label="Recreation & Entertainment", color="#3a8f5c", icon="Film"),
    Category(id="financial-obligations", label="Financial Obligations", color="#165c3e", icon="CreditCard"),
    Category(id="savings-investments", label="Savings & Investments", color="#0d4a2f", icon="TrendingUp"),
    Category(id="miscellaneous-other", label="Miscellaneous / Other", color="#b5dcc5", icon="MoreHorizontal"),
)


def _validate_catalog(catalog: tuple[Category, ...]) -> Mapping[str, Category]:
    """Build the read-only id index, failing loudly on a broken catalog."""
    index: dict[str, Category] = {}
    for category in catalog:
        if category.id in index:
            raise ValueError(f"Duplicate category id in catalog: {category.id}")
        index[category.id] = category
    if DEFAULT_CATEGORY_ID not in index:
        raise ValueError(f"Catalog is missing the default category: {DEFAULT_CATEGORY_ID}")
    return MappingProxyType(index)


CATEGORIES: Mapping[str, Category] = _validate_catalog(_CATALOG)

# icon -> category, first category wins for a shared icon
_BY_ICON: Mapping[str, Category] = MappingProxyType(
    {c.icon: c for c in reversed(_CATALOG)}
)


def all_categories() -> tuple[Category, ...]:
    """Catalog entries in display order."""
    return _CATALOG


def get_category(category_id: Optional[str]) -> Category:
    """Resolve a category id, falling back to miscellaneous-other."""
    if category_id and category_id in CATEGORIES:
        return CATEGORIES[category_id]
    return CATEGORIES[DEFAULT_CATEGORY_ID]


def is_known_category(category_id: Optional[str]) -> bool:
    return isinstance(category_id, str) and category_id in CATEGORIES


def category_icon(category_id: Optional[str]) -> str:
    """Icon tag for a category id (default category's icon when unknown)."""
    return get_category(category_id).icon


def category_for_icon(icon: Optional[str]) -> Optional[Category]:
    """Reverse lookup used to label analytics slices. None when no category uses the icon."""
    if not icon:
        return None
    return _BY_ICON.get(icon)
