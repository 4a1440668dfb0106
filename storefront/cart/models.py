"""Cart value types: entries, the derived cart view, and sync outcomes."""
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable

from storefront.errors import StoreError
from storefront.models import Product
from storefront.services.money import format_money, to_float


@dataclass(frozen=True)
class CartEntry:
    """One product line in the cart. Quantity is always >= 1."""
    product: Product
    quantity: int

    @property
    def product_id(self) -> str:
        return self.product.id

    @property
    def line_total(self) -> Decimal:
        return self.product.price * self.quantity


@dataclass(frozen=True)
class DerivedCart:
    """Read-only view of the ledger: items plus computed totals."""
    items: tuple[CartEntry, ...]
    total: Decimal
    item_count: int

    @property
    def is_empty(self) -> bool:
        return not self.items

    def to_dict(self) -> dict:
        """Summary for templates and JSON responses."""
        return {
            "is_empty": self.is_empty,
            "item_count": self.item_count,
            "items": [
                {
                    "product_id": entry.product_id,
                    "product_name": entry.product.name,
                    "quantity": entry.quantity,
                    "unit_price": to_float(entry.product.price),
                    "total": to_float(entry.line_total),
                }
                for entry in self.items
            ],
            "total": to_float(self.total),
            "total_display": format_money(self.total),
        }


def derive_cart(entries: Iterable[CartEntry]) -> DerivedCart:
    """Recompute total and item count over the given entries."""
    items = tuple(entries)
    total = sum((entry.line_total for entry in items), Decimal("0"))
    item_count = sum(entry.quantity for entry in items)
    return DerivedCart(items=items, total=total, item_count=item_count)


class SyncStatus(str, Enum):
    """Result of one background remote sync."""
    SYNCED = "synced"
    SKIPPED = "skipped"  # Nothing to send, or the session changed first
    FAILED = "failed"


class SyncFailureKind(str, Enum):
    """Why a remote cart call did not take effect."""
    TRANSIENT = "transient"  # Network error or non-2xx response
    STALE_INDEX = "stale_index"  # Indexed record reported missing by the store
    LOAD = "load"  # Fetching the user's cart failed


@dataclass(frozen=True)
class SyncFailure:
    """A swallowed remote failure, handed to failure listeners."""
    kind: SyncFailureKind
    operation: str
    user_id: str | None
    product_id: str | None
    error: StoreError


@dataclass(frozen=True)
class SyncOutcome:
    """What a background sync task resolves to. Never raised, only returned."""
    operation: str
    product_id: str | None
    status: SyncStatus
    failure: SyncFailure | None = None

    @property
    def ok(self) -> bool:
        return self.status is not SyncStatus.FAILED
