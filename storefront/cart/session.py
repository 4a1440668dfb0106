"""Session bridge: keeps the cart in step with the signed-in identity."""
import asyncio

from storefront.auth import AuthSession
from storefront.cart.models import CartEntry
from storefront.cart.service import CartManager
from storefront.config import LoginPolicy
from storefront.logging import get_logger, sanitize_id_for_logging

logger = get_logger(__name__)


class SessionBridge:
    """
    Reacts to identity transitions reported by the auth session.

    - anonymous -> user: load the user's remote cart (replacing the local one,
      or merging anonymous items back in under LoginPolicy.MERGE)
    - user -> anonymous / other user: reset the local cart immediately, with
      no remote clear, so the previous user's remote cart survives
    """

    def __init__(
        self,
        auth: AuthSession,
        cart: CartManager,
        login_policy: LoginPolicy = LoginPolicy.REPLACE,
    ) -> None:
        self._auth = auth
        self._cart = cart
        self.login_policy = login_policy
        self._unsubscribe = None
        self._pending: set[asyncio.Task] = set()

    def attach(self) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self._auth.subscribe(self._on_identity_change)
        if self._auth.user_id is not None:
            self._on_identity_change(None, self._auth.user_id)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def wait_for_load(self) -> list[bool]:
        """Wait for cart loads started by identity changes."""
        return list(await asyncio.gather(*list(self._pending)))

    def _on_identity_change(self, previous: str | None, current: str | None) -> None:
        if previous == current:
            return

        carried: tuple[CartEntry, ...] = ()
        if previous is None:
            if self.login_policy is LoginPolicy.MERGE:
                carried = self._cart.cart.items
        else:
            self._cart.reset_local()

        if current is None:
            return

        self._cart.begin_session(current)
        task = asyncio.create_task(self._load(current, carried))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _load(self, user_id: str, carried: tuple[CartEntry, ...]) -> bool:
        loaded = await self._cart.load_for_user(user_id)
        if not loaded or not carried or self._cart.user_id != user_id:
            return loaded

        logger.info(
            "Merging %d anonymous cart lines into cart of %s",
            len(carried),
            sanitize_id_for_logging(user_id),
        )
        for entry in carried:
            self._cart.add_to_cart(entry.product, entry.quantity)
        return loaded
