"""
Storefront - one wired-up client per running application instance.

Usage:
    async with Storefront.create() as shop:
        await shop.auth.login(email, password)
        shop.cart.add_to_cart(product, 2)
        print(shop.cart.cart.total)
"""

from storefront.auth import AuthSession
from storefront.cart import CartManager, SessionBridge
from storefront.config import StoreSettings
from storefront.logging import get_logger
from storefront.services.store import StoreClient

logger = get_logger(__name__)


class Storefront:
    """Owns the record service client, auth session, cart and session bridge.

    Construct one per application instance and pass it to whatever needs cart
    or identity state; nothing here is module-global.
    """

    def __init__(self, settings: StoreSettings, store: StoreClient) -> None:
        self.settings = settings
        self.store = store
        self.auth = AuthSession(store)
        self.cart = CartManager(
            store,
            keep_index_on_failed_delete=settings.keep_index_on_failed_delete,
        )
        self.session = SessionBridge(self.auth, self.cart, login_policy=settings.login_policy)
        self.session.attach()

    @classmethod
    def create(cls, settings: StoreSettings | None = None) -> "Storefront":
        """Build from settings (environment by default)."""
        settings = settings or StoreSettings.from_env()
        store = StoreClient(
            settings.api_url,
            timeout=settings.timeout,
            connect_timeout=settings.connect_timeout,
        )
        logger.info("Storefront client for %s", settings.api_url)
        return cls(settings, store)

    async def aclose(self) -> None:
        """Let in-flight cart syncs finish, then close the HTTP client."""
        self.session.detach()
        await self.session.wait_for_load()
        await self.cart.wait_for_sync()
        await self.store.aclose()

    async def __aenter__(self) -> "Storefront":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
