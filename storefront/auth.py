"""Auth session: who is signed in, and who wants to know when that changes.

Token issuance belongs to the record service; this only holds the result.
"""

from collections.abc import Callable

from storefront.errors import ERROR_PASSWORDS_MISMATCH, StoreError
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.models import User
from storefront.services.store import StoreClient

logger = get_logger(__name__)

# listener(previous_user_id, current_user_id)
IdentityListener = Callable[[str | None, str | None], None]


class AuthSession:
    """Current identity of the running application instance."""

    def __init__(self, store: StoreClient) -> None:
        self._store = store
        self.user: User | None = None
        self.is_loading = False
        self._listeners: list[IdentityListener] = []

    @property
    def user_id(self) -> str | None:
        return self.user.id if self.user else None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def token(self) -> str | None:
        return self._store.token

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """Register for identity transitions; returns an unsubscribe callable."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def set_user(self, user: User | None, token: str | None = None) -> None:
        """Switch identity. Listeners fire only if the user id changes."""
        previous = self.user_id
        self.user = user
        self._store.token = token if user is not None else None
        current = self.user_id
        if previous == current:
            return
        logger.info(
            "Identity changed: %s -> %s",
            sanitize_id_for_logging(previous),
            sanitize_id_for_logging(current),
        )
        for listener in list(self._listeners):
            try:
                listener(previous, current)
            except Exception:
                logger.exception("Identity listener %r failed", listener)

    async def login(self, email: str, password: str) -> dict:
        """
        Sign in with email and password.

        Returns:
            {"success": True} or {"success": False, "error": message}
        """
        self.is_loading = True
        try:
            result = await self._store.login(email, password)
        except StoreError as e:
            logger.info("Login failed: %s", e.message)
            return {"success": False, "error": e.message}
        finally:
            self.is_loading = False

        self.set_user(result.user, result.token)
        return {"success": True}

    async def register(self, name: str, email: str, password: str, confirm_password: str) -> dict:
        """Create an account and sign in with it."""
        if password != confirm_password:
            return {"success": False, "error": ERROR_PASSWORDS_MISMATCH}

        self.is_loading = True
        try:
            result = await self._store.register(name, email, password, confirm_password)
        except StoreError as e:
            logger.info("Registration failed: %s", e.message)
            return {"success": False, "error": e.message}
        finally:
            self.is_loading = False

        self.set_user(result.user, result.token)
        return {"success": True}

    def logout(self) -> None:
        self.set_user(None)
