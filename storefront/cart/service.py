"""Cart manager: an optimistic local cart mirrored to the record service.

Every public mutation changes the ledger synchronously and returns before any
network call is made. When a user is signed in, the matching remote call runs
as a background task. A failed remote call is logged and reported to failure
listeners but never raised and never rolled back: the local cart is
authoritative and the remote copy is best-effort.

Remote work for a session goes through a single lock, and each step re-reads
the ledger and the identity index after acquiring it, so decisions such as
create-versus-update are made against current state rather than the state at
call time.

A load replaces the cart with the remote one, but mutations whose sync is
still queued behind the load are not in the fetched records yet. They are
replayed on top of the fetched entries so the user's latest intent wins and
the queued syncs then bring the remote cart in line.
"""
import asyncio
from collections.abc import Callable, Coroutine
from typing import Any, Iterable

from storefront.cart.index import RemoteIdentityIndex
from storefront.cart.ledger import CartAction, CartLedger, Remove, Replace, SetQuantity, Upsert, reduce_cart
from storefront.cart.models import (
    CartEntry,
    DerivedCart,
    SyncFailure,
    SyncFailureKind,
    SyncOutcome,
    SyncStatus,
    derive_cart,
)
from storefront.errors import RecordNotFoundError, StoreError
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.models import CartRecord, Product
from storefront.services.store import CartRecordStore

logger = get_logger(__name__)

CartListener = Callable[[DerivedCart], None]
FailureListener = Callable[[SyncFailure], None]


def _entries_from_records(
    records: Iterable[CartRecord],
) -> tuple[tuple[CartEntry, ...], list[tuple[str, str]]]:
    """Turn remote records into ledger entries and (product id, record id) pairs.

    The ledger holds one entry per product, so only the first record for a
    product is used. Records with a non-positive quantity are ignored.
    """
    entries: list[CartEntry] = []
    pairs: list[tuple[str, str]] = []
    seen: set[str] = set()
    for record in records:
        if record.product_id != record.product.id:
            logger.warning(
                "Ignoring cart record %s: productId does not match embedded product",
                sanitize_id_for_logging(record.id),
            )
            continue
        if record.quantity < 1:
            logger.warning(
                "Ignoring cart record %s with quantity %d",
                sanitize_id_for_logging(record.id),
                record.quantity,
            )
            continue
        if record.product_id in seen:
            logger.warning(
                "Ignoring duplicate cart record %s for product %s",
                sanitize_id_for_logging(record.id),
                sanitize_id_for_logging(record.product_id),
            )
            continue
        seen.add(record.product_id)
        entries.append(CartEntry(product=record.product, quantity=record.quantity))
        pairs.append((record.product_id, record.id))
    return tuple(entries), pairs


class CartManager:
    """
    Single read/write surface for cart state.

    Features:
    - Local-only cart for anonymous use
    - Remote mirroring for a signed-in user, keyed by store record ids
    - Replace-on-load when the signed-in user changes
    - Opt-in observation of background sync results
    """

    def __init__(self, store: CartRecordStore, keep_index_on_failed_delete: bool = False) -> None:
        self._store = store
        self._ledger = CartLedger()
        self._index = RemoteIdentityIndex()
        self._cart = derive_cart(())

        self._user_id: str | None = None
        # Bumped whenever the remote session changes; stale tasks compare against it
        self._generation = 0
        self._sync_lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()
        self._loading = 0
        # Session mutations whose sync has not taken the lock yet, by revision
        self._revision = 0
        self._unsynced: list[tuple[int, CartAction]] = []

        self._listeners: list[CartListener] = []
        self._failure_listeners: list[FailureListener] = []

        # When False a failed remote delete still drops the index entry
        self.keep_index_on_failed_delete = keep_index_on_failed_delete

    # ==================== READ SURFACE ====================

    @property
    def cart(self) -> DerivedCart:
        return self._cart

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def is_authenticated(self) -> bool:
        return self._user_id is not None

    @property
    def is_loading(self) -> bool:
        return self._loading > 0

    @property
    def index(self) -> RemoteIdentityIndex:
        return self._index

    def is_in_cart(self, product_id: str) -> bool:
        return product_id in self._ledger

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """Call ``listener`` with the recomputed cart after every change."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def on_sync_failure(self, listener: FailureListener) -> Callable[[], None]:
        """Call ``listener`` for every remote failure the cart swallows."""
        self._failure_listeners.append(listener)
        return lambda: self._failure_listeners.remove(listener)

    # ==================== MUTATIONS ====================

    def add_to_cart(self, product: Product, quantity: int = 1) -> asyncio.Task | None:
        """Add ``quantity`` units of ``product``.

        Signed in, the product's remote record is updated to the new total,
        or created if the product has no confirmed record yet.

        Returns:
            The background sync task, or None when no remote sync applies
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValueError("quantity must be a positive integer")
        revision = self._mutate(Upsert(product, quantity))
        return self._schedule_product_sync("add", revision, product.id, create_missing=True)

    def remove_from_cart(self, product_id: str) -> asyncio.Task | None:
        revision = self._mutate(Remove(product_id))
        return self._schedule_product_sync("remove", revision, product_id, create_missing=False)

    def update_quantity(self, product_id: str, quantity: int) -> asyncio.Task | None:
        """Set an absolute quantity. Zero or below removes the product."""
        revision = self._mutate(SetQuantity(product_id, quantity))
        return self._schedule_product_sync("update", revision, product_id, create_missing=False)

    def clear_cart(self) -> asyncio.Task | None:
        """Empty the cart and, signed in, every remote record of the user."""
        revision = self._mutate(Replace())
        if self._user_id is None:
            return None
        return self._spawn(self._sync_clear(self._user_id, self._generation, revision))

    # ==================== SESSION ====================

    def begin_session(self, user_id: str) -> None:
        """Direct remote sync at ``user_id``.

        Coming from anonymous, the local cart is kept. Coming from another
        user, that user's cart is reset locally first so it cannot leak into
        the new user's remote cart.
        """
        if user_id == self._user_id:
            return
        if self._user_id is not None:
            self.reset_local()
        self._user_id = user_id
        self._generation += 1
        self._index.clear()
        self._unsynced.clear()

    def reset_local(self) -> None:
        """End the remote session and empty the cart without any network call.

        The previous user's remote records are left as they are.
        """
        self._user_id = None
        self._generation += 1
        self._index.clear()
        self._unsynced.clear()
        self._apply(Replace())

    async def load_for_user(self, user_id: str) -> bool:
        """Replace the cart with ``user_id``'s remote cart.

        Mutations whose sync is still queued behind the load are replayed on
        top of the fetched entries. On failure the current local cart is kept as is.

        Returns:
            True if the remote cart was loaded and applied
        """
        self.begin_session(user_id)
        generation = self._generation
        self._loading += 1
        try:
            async with self._sync_lock:
                if not self._is_current(user_id, generation):
                    return False
                try:
                    records = await self._store.get_cart_records(user_id)
                except StoreError as e:
                    self._report(SyncFailure(SyncFailureKind.LOAD, "load", user_id, None, e))
                    return False
                if not self._is_current(user_id, generation):
                    logger.info("Discarding cart load for %s: session changed", sanitize_id_for_logging(user_id))
                    return False

                entries, pairs = _entries_from_records(records)
                # Their syncs wait behind this load, so the fetch cannot include them
                replayed = [action for _, action in self._unsynced]
                for action in replayed:
                    entries = reduce_cart(entries, action)
                self._index.replace(pairs)
                self._apply(Replace(entries))
        finally:
            self._loading -= 1

        logger.info(
            "Loaded cart of user %s: %d lines, %d local changes replayed",
            sanitize_id_for_logging(user_id),
            len(entries),
            len(replayed),
        )
        return True

    async def wait_for_sync(self) -> list[SyncOutcome]:
        """Wait until every background sync, including ones started meanwhile, is done."""
        outcomes: list[SyncOutcome] = []
        seen: set[asyncio.Task] = set()
        while True:
            batch = [task for task in self._pending if task not in seen]
            if not batch:
                return outcomes
            seen.update(batch)
            outcomes.extend(await asyncio.gather(*batch))

    # ==================== INTERNALS ====================

    def _apply(self, action: CartAction) -> None:
        entries = self._ledger.apply(action)
        self._cart = derive_cart(entries)
        for listener in list(self._listeners):
            try:
                listener(self._cart)
            except Exception:
                logger.exception("Cart listener %r failed", listener)

    def _mutate(self, action: CartAction) -> int:
        """Apply a caller's mutation; signed in, remember it until its sync runs."""
        self._apply(action)
        if self._user_id is None:
            return 0
        self._revision += 1
        self._unsynced.append((self._revision, action))
        return self._revision

    def _mark_synced(self, revision: int) -> None:
        # Lock order is spawn order, so everything up to ``revision`` has had its turn
        self._unsynced = [(rev, action) for rev, action in self._unsynced if rev > revision]

    def _is_current(self, user_id: str, generation: int) -> bool:
        return self._user_id == user_id and self._generation == generation

    def _spawn(self, coro: Coroutine[Any, Any, SyncOutcome]) -> asyncio.Task:
        # Keep a reference so the task is not garbage collected mid-flight
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def _schedule_product_sync(
        self, operation: str, revision: int, product_id: str, create_missing: bool
    ) -> asyncio.Task | None:
        if self._user_id is None:
            return None
        return self._spawn(
            self._sync_product(operation, self._user_id, self._generation, revision, product_id, create_missing)
        )

    async def _sync_product(
        self,
        operation: str,
        user_id: str,
        generation: int,
        revision: int,
        product_id: str,
        create_missing: bool,
    ) -> SyncOutcome:
        """Bring the product's remote record in line with the ledger."""
        async with self._sync_lock:
            if not self._is_current(user_id, generation):
                return SyncOutcome(operation, product_id, SyncStatus.SKIPPED)
            self._mark_synced(revision)

            entry = self._ledger.get(product_id)
            record_id = self._index.get(product_id)
            try:
                if entry is None:
                    if record_id is None:
                        return SyncOutcome(operation, product_id, SyncStatus.SKIPPED)
                    await self._delete_record(user_id, generation, product_id, record_id)
                elif record_id is not None:
                    await self._store.update_cart_record_quantity(record_id, entry.quantity)
                elif create_missing:
                    record = await self._store.create_cart_record(user_id, entry.product, entry.quantity)
                    if self._is_current(user_id, generation):
                        self._index.set(product_id, record.id)
                else:
                    return SyncOutcome(operation, product_id, SyncStatus.SKIPPED)
            except StoreError as e:
                stale = isinstance(e, RecordNotFoundError) and record_id is not None
                kind = SyncFailureKind.STALE_INDEX if stale else SyncFailureKind.TRANSIENT
                failure = SyncFailure(kind, operation, user_id, product_id, e)
                self._report(failure)
                return SyncOutcome(operation, product_id, SyncStatus.FAILED, failure)

        logger.debug("Cart %s synced for product %s", operation, sanitize_id_for_logging(product_id))
        return SyncOutcome(operation, product_id, SyncStatus.SYNCED)

    async def _delete_record(self, user_id: str, generation: int, product_id: str, record_id: str) -> None:
        try:
            await self._store.delete_cart_record(record_id)
        except RecordNotFoundError:
            # Already gone remotely, the entry is wrong under either policy
            self._deindex(user_id, generation, product_id, record_id)
            raise
        except StoreError:
            if not self.keep_index_on_failed_delete:
                self._deindex(user_id, generation, product_id, record_id)
            raise
        self._deindex(user_id, generation, product_id, record_id)

    def _deindex(self, user_id: str, generation: int, product_id: str, record_id: str) -> None:
        if self._is_current(user_id, generation):
            self._index.delete(product_id, record_id)

    async def _sync_clear(self, user_id: str, generation: int, revision: int) -> SyncOutcome:
        async with self._sync_lock:
            if not self._is_current(user_id, generation):
                return SyncOutcome("clear", None, SyncStatus.SKIPPED)
            self._mark_synced(revision)
            try:
                await self._store.delete_all_cart_records_for_user(user_id)
            except StoreError as e:
                failure = SyncFailure(SyncFailureKind.TRANSIENT, "clear", user_id, None, e)
                self._report(failure)
                outcome = SyncOutcome("clear", None, SyncStatus.FAILED, failure)
            else:
                outcome = SyncOutcome("clear", None, SyncStatus.SYNCED)
            if self._is_current(user_id, generation):
                self._index.clear()
        return outcome

    def _report(self, failure: SyncFailure) -> None:
        logger.warning(
            "Cart %s failed (%s) for user %s, product %s: %s",
            failure.operation,
            failure.kind.value,
            sanitize_id_for_logging(failure.user_id),
            sanitize_id_for_logging(failure.product_id),
            failure.error.message,
        )
        for listener in list(self._failure_listeners):
            try:
                listener(failure)
            except Exception:
                logger.exception("Cart failure listener %r failed", listener)
