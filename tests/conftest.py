"""Pytest configuration and fixtures"""
import asyncio
import os
from typing import Any, Dict, List, Optional, Set

import pytest

# Set test environment variables
os.environ.setdefault("STORE_API_URL", "http://store.test")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from storefront.cart import CartManager
from storefront.errors import RecordNotFoundError, StoreUnavailableError
from storefront.models import CartRecord, Product


def make_product(product_id: str = "p1", price: float = 20.0, **extra) -> Product:
    data: Dict[str, Any] = {
        "id": product_id,
        "name": f"Product {product_id}",
        "price": price,
        "stock": 10,
        "images": [f"https://img.test/{product_id}.png"],
    }
    data.update(extra)
    return Product.model_validate(data)


class FakeCartStore:
    """In-memory record service.

    ``fail`` holds call names that raise StoreUnavailableError. While ``gate``
    is set and not released, every call blocks after being recorded, which
    lets tests interleave local mutations with in-flight remote calls.
    """

    def __init__(self):
        self.records: Dict[str, Dict[str, Any]] = {}
        self.calls: List[tuple] = []
        self.fail: Set[str] = set()
        self.gate: Optional[asyncio.Event] = None
        self._counter = 0

    async def _enter(self, name: str, *args):
        self.calls.append((name, *args))
        if self.gate is not None:
            await self.gate.wait()
        if name in self.fail:
            raise StoreUnavailableError()

    def seed(self, user_id: str, product: Product, quantity: int, record_id: Optional[str] = None) -> str:
        self._counter += 1
        record_id = record_id or f"rec-{self._counter}"
        self.records[record_id] = {
            "id": record_id,
            "userId": user_id,
            "productId": product.id,
            "product": product.model_dump(mode="json", by_alias=True),
            "quantity": quantity,
        }
        return record_id

    def quantities(self, user_id: str) -> Dict[str, int]:
        return {
            r["productId"]: r["quantity"]
            for r in self.records.values()
            if r["userId"] == user_id
        }

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]

    async def get_cart_records(self, user_id: str) -> List[CartRecord]:
        await self._enter("get", user_id)
        return [
            CartRecord.model_validate(r)
            for r in self.records.values()
            if r["userId"] == user_id
        ]

    async def create_cart_record(self, user_id: str, product: Product, quantity: int) -> CartRecord:
        await self._enter("create", user_id, product.id, quantity)
        record_id = self.seed(user_id, product, quantity)
        return CartRecord.model_validate(self.records[record_id])

    async def update_cart_record_quantity(self, record_id: str, quantity: int) -> CartRecord:
        await self._enter("update", record_id, quantity)
        if record_id not in self.records:
            raise RecordNotFoundError()
        self.records[record_id]["quantity"] = quantity
        return CartRecord.model_validate(self.records[record_id])

    async def delete_cart_record(self, record_id: str) -> None:
        await self._enter("delete", record_id)
        if record_id not in self.records:
            raise RecordNotFoundError()
        del self.records[record_id]

    async def delete_all_cart_records_for_user(self, user_id: str) -> None:
        await self._enter("delete_all", user_id)
        for record_id in [k for k, r in self.records.items() if r["userId"] == user_id]:
            del self.records[record_id]


@pytest.fixture
def fake_store():
    """In-memory record service"""
    return FakeCartStore()


@pytest.fixture
def cart_manager(fake_store):
    """Cart manager backed by the in-memory store"""
    return CartManager(fake_store)


@pytest.fixture
def product_p():
    """Product P at 20.00"""
    return make_product("P", 20.0)


@pytest.fixture
def product_q():
    """Product Q at 5.00"""
    return make_product("Q", 5.0)


@pytest.fixture
def product_factory():
    """Build products by id and price"""
    return make_product
