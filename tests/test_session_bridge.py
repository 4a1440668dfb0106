"""
Tests for SessionBridge: cart behaviour across login, logout and user switch
"""

from decimal import Decimal

import pytest

from storefront.auth import AuthSession
from storefront.cart import SessionBridge
from storefront.config import LoginPolicy
from storefront.models import User
from storefront.services.store import StoreClient


@pytest.fixture
def auth():
    """Auth session that is never asked to hit the network"""
    return AuthSession(StoreClient("http://store.test"))


@pytest.fixture
def bridge(auth, cart_manager):
    bridge = SessionBridge(auth, cart_manager)
    bridge.attach()
    return bridge


def _user(user_id: str) -> User:
    return User(id=user_id, name=user_id.upper(), email=f"{user_id}@example.com")


def _items(cart_manager):
    return [(e.product_id, e.quantity) for e in cart_manager.cart.items]


@pytest.mark.asyncio
async def test_login_replaces_anonymous_cart(auth, bridge, cart_manager, fake_store, product_p, product_q):
    cart_manager.add_to_cart(product_p, 2)
    assert cart_manager.cart.total == Decimal("40.00")
    assert cart_manager.cart.item_count == 2
    fake_store.seed("u1", product_q, 1)

    auth.set_user(_user("u1"), "token-1")
    assert await bridge.wait_for_load() == [True]

    assert _items(cart_manager) == [("Q", 1)]
    assert cart_manager.cart.total == Decimal("5.00")
    assert cart_manager.is_in_cart("P") is False
    assert cart_manager.user_id == "u1"


@pytest.mark.asyncio
async def test_add_after_login_is_persisted(auth, bridge, cart_manager, fake_store, product_p):
    auth.set_user(_user("u1"), "token-1")
    assert cart_manager.is_authenticated

    await bridge.wait_for_load()
    await cart_manager.add_to_cart(product_p)

    assert fake_store.quantities("u1") == {"P": 1}


@pytest.mark.asyncio
async def test_add_before_login_load_finishes_is_kept(auth, bridge, cart_manager, fake_store, product_p):
    fake_store.seed("u1", product_p, 3)

    auth.set_user(_user("u1"), "token-1")
    cart_manager.add_to_cart(product_p)

    assert await bridge.wait_for_load() == [True]
    await cart_manager.wait_for_sync()

    assert _items(cart_manager) == [("P", 4)]
    assert fake_store.quantities("u1") == {"P": 4}


@pytest.mark.asyncio
async def test_logout_empties_cart_without_remote_clear(auth, bridge, cart_manager, fake_store, product_p, product_q):
    fake_store.seed("u1", product_p, 2)
    fake_store.seed("u1", product_q, 1)
    auth.set_user(_user("u1"), "token-1")
    await bridge.wait_for_load()

    auth.logout()

    assert cart_manager.cart.is_empty
    assert cart_manager.is_in_cart("P") is False
    assert cart_manager.is_in_cart("Q") is False
    assert len(cart_manager.index) == 0
    assert cart_manager.user_id is None
    assert "delete_all" not in fake_store.call_names()
    assert fake_store.quantities("u1") == {"P": 2, "Q": 1}


@pytest.mark.asyncio
async def test_anonymous_use_after_logout_stays_local(auth, bridge, cart_manager, fake_store, product_p):
    auth.set_user(_user("u1"), "token-1")
    await bridge.wait_for_load()
    auth.logout()

    assert cart_manager.add_to_cart(product_p) is None
    assert fake_store.call_names() == ["get"]


@pytest.mark.asyncio
async def test_switching_user_loads_new_cart(auth, bridge, cart_manager, fake_store, product_p, product_q):
    fake_store.seed("u1", product_p, 2)
    fake_store.seed("u2", product_q, 3)
    auth.set_user(_user("u1"), "token-1")
    await bridge.wait_for_load()

    auth.set_user(_user("u2"), "token-2")
    assert cart_manager.cart.is_empty

    await bridge.wait_for_load()
    assert _items(cart_manager) == [("Q", 3)]
    assert fake_store.quantities("u1") == {"P": 2}


@pytest.mark.asyncio
async def test_failed_login_load_keeps_local_items(auth, bridge, cart_manager, fake_store, product_p):
    cart_manager.add_to_cart(product_p, 2)
    fake_store.fail.add("get")

    auth.set_user(_user("u1"), "token-1")

    assert await bridge.wait_for_load() == [False]
    assert _items(cart_manager) == [("P", 2)]


@pytest.mark.asyncio
async def test_merge_policy_keeps_anonymous_items(auth, cart_manager, fake_store, product_p, product_q):
    bridge = SessionBridge(auth, cart_manager, login_policy=LoginPolicy.MERGE)
    bridge.attach()
    cart_manager.add_to_cart(product_p, 2)
    fake_store.seed("u1", product_q, 1)

    auth.set_user(_user("u1"), "token-1")
    await bridge.wait_for_load()
    await cart_manager.wait_for_sync()

    assert _items(cart_manager) == [("Q", 1), ("P", 2)]
    assert fake_store.quantities("u1") == {"Q": 1, "P": 2}


@pytest.mark.asyncio
async def test_merge_adds_to_remote_quantity(auth, cart_manager, fake_store, product_p):
    bridge = SessionBridge(auth, cart_manager, login_policy=LoginPolicy.MERGE)
    bridge.attach()
    cart_manager.add_to_cart(product_p, 2)
    fake_store.seed("u1", product_p, 1)

    auth.set_user(_user("u1"), "token-1")
    await bridge.wait_for_load()
    await cart_manager.wait_for_sync()

    assert _items(cart_manager) == [("P", 3)]
    assert fake_store.quantities("u1") == {"P": 3}


@pytest.mark.asyncio
async def test_attach_when_already_signed_in_loads(auth, cart_manager, fake_store, product_q):
    fake_store.seed("u1", product_q, 1)
    auth.set_user(_user("u1"), "token-1")

    bridge = SessionBridge(auth, cart_manager)
    bridge.attach()
    await bridge.wait_for_load()

    assert _items(cart_manager) == [("Q", 1)]


@pytest.mark.asyncio
async def test_detach_stops_following_identity(auth, bridge, cart_manager, product_p):
    cart_manager.add_to_cart(product_p)
    bridge.detach()

    auth.set_user(_user("u1"), "token-1")

    assert await bridge.wait_for_load() == []
    assert cart_manager.user_id is None
    assert _items(cart_manager) == [("P", 1)]
