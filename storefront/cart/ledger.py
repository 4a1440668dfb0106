"""Cart ledger: the ordered cart entries and the actions that change them.

``reduce_cart`` is a pure transition function: it never mutates its input
and is total over every action, so removing an absent product is a no-op.
"""
from dataclasses import dataclass
from typing import Iterator, Union

from storefront.cart.models import CartEntry
from storefront.models import Product


@dataclass(frozen=True)
class Replace:
    """Discard the current entries and use these instead."""
    entries: tuple[CartEntry, ...] = ()


@dataclass(frozen=True)
class Upsert:
    """Add ``delta`` units of a product. Callers guarantee delta >= 1."""
    product: Product
    delta: int


@dataclass(frozen=True)
class SetQuantity:
    """Set an absolute quantity; zero or below removes the entry."""
    product_id: str
    quantity: int


@dataclass(frozen=True)
class Remove:
    product_id: str


CartAction = Union[Replace, Upsert, SetQuantity, Remove]


def reduce_cart(entries: tuple[CartEntry, ...], action: CartAction) -> tuple[CartEntry, ...]:
    """Return the entries that result from applying ``action``."""
    if isinstance(action, Replace):
        return tuple(action.entries)

    if isinstance(action, Upsert):
        product_id = action.product.id
        if any(entry.product_id == product_id for entry in entries):
            # Keep the snapshot taken when the product was first added
            return tuple(
                CartEntry(entry.product, entry.quantity + action.delta)
                if entry.product_id == product_id else entry
                for entry in entries
            )
        snapshot = action.product.model_copy(deep=True)
        return entries + (CartEntry(snapshot, action.delta),)

    if isinstance(action, SetQuantity):
        if action.quantity <= 0:
            return tuple(entry for entry in entries if entry.product_id != action.product_id)
        return tuple(
            CartEntry(entry.product, action.quantity)
            if entry.product_id == action.product_id else entry
            for entry in entries
        )

    if isinstance(action, Remove):
        return tuple(entry for entry in entries if entry.product_id != action.product_id)

    raise TypeError(f"Unknown cart action: {type(action).__name__}")


class CartLedger:
    """Holds the current entries; every change goes through ``apply``."""

    def __init__(self) -> None:
        self._entries: tuple[CartEntry, ...] = ()

    @property
    def entries(self) -> tuple[CartEntry, ...]:
        return self._entries

    def apply(self, action: CartAction) -> tuple[CartEntry, ...]:
        self._entries = reduce_cart(self._entries, action)
        return self._entries

    def get(self, product_id: str) -> CartEntry | None:
        return next((entry for entry in self._entries if entry.product_id == product_id), None)

    def __contains__(self, product_id: object) -> bool:
        return any(entry.product_id == product_id for entry in self._entries)

    def __iter__(self) -> Iterator[CartEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
