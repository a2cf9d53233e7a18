from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping

Platform = Literal["troponin-nutrition", "troponin-supplements"]
ProductType = Literal["supplement", "stack", "book", "program"]
PriceTier = Literal["low", "mid", "high"]
Intent = Literal["product_search", "platform_routing", "goal_based", "category_browse"]

NUTRITION_PLATFORM: Platform = "troponin-nutrition"
SUPPLEMENTS_PLATFORM: Platform = "troponin-supplements"

__all__ = [
    "Platform",
    "ProductType",
    "PriceTier",
    "Intent",
    "NUTRITION_PLATFORM",
    "SUPPLEMENTS_PLATFORM",
    "Ingredient",
    "Usage",
    "StackComponent",
    "Product",
    "ProductSummary",
    "QuickIntent",
    "PlatformRoute",
]


@dataclass(slots=True, frozen=True)
class Ingredient:
    name: str
    amount: str


@dataclass(slots=True, frozen=True)
class Usage:
    dosage: str
    timing: str


@dataclass(slots=True, frozen=True)
class StackComponent:
    product_id: str
    quantity: int = 1
    role: str | None = None


@dataclass(slots=True, frozen=True)
class Product:
    """One catalog entry: an individual supplement, stack, book or program."""

    id: str
    name: str
    category: str
    type: ProductType
    available_on: tuple[str, ...]
    description: str
    key_benefits: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    website_url: str | None = None
    key_ingredients: tuple[Ingredient, ...] = ()
    usage: Usage | None = None
    subtitle: str | None = None
    components: tuple[StackComponent, ...] = ()
    stack_benefits: tuple[str, ...] = ()

    @property
    def is_stack(self) -> bool:
        return self.type == "stack"

    def searchable_text(self) -> str:
        parts = [self.name, self.description, *self.tags, *self.key_benefits]
        if self.is_stack:
            parts.extend(self.stack_benefits)
        return " ".join(parts).lower()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Product":
        usage_raw = data.get("usage")
        usage = None
        if isinstance(usage_raw, Mapping):
            usage = Usage(
                dosage=str(usage_raw.get("dosage", "")),
                timing=str(usage_raw.get("timing", "")),
            )
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            category=str(data.get("category", "")),
            type=data.get("type", "supplement"),
            available_on=tuple(data.get("availableOn") or ()),
            description=str(data.get("description", "")),
            key_benefits=tuple(data.get("keyBenefits") or ()),
            tags=tuple(data.get("tags") or ()),
            website_url=data.get("websiteUrl"),
            key_ingredients=tuple(
                Ingredient(name=str(item["name"]), amount=str(item["amount"]))
                for item in data.get("keyIngredients") or ()
            ),
            usage=usage,
            subtitle=data.get("subtitle"),
            components=tuple(
                StackComponent(
                    product_id=str(item["productId"]),
                    quantity=int(item.get("quantity", 1)),
                    role=item.get("role"),
                )
                for item in data.get("components") or ()
            ),
            stack_benefits=tuple(data.get("stackBenefits") or ()),
        )


@dataclass(slots=True, frozen=True)
class ProductSummary:
    id: str
    name: str
    category: str
    type: str
    platform: tuple[str, ...]
    tags: tuple[str, ...]
    price_tier: PriceTier = "low"


@dataclass(slots=True, frozen=True)
class QuickIntent:
    intent: Intent
    confidence: float
    suggested_action: str
    keywords: tuple[str, ...] = field(default_factory=tuple)


@dataclass(slots=True, frozen=True)
class PlatformRoute:
    platform: Platform
    confidence: float
    reasoning: str
