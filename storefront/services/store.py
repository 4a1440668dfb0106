"""Record Service Client - async httpx access to the storefront REST store.

Cart lines live in the ``cartItems`` collection keyed by opaque record ids;
every failure surfaces as a StoreError subclass so callers catch one type.
"""

import asyncio
import uuid
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from storefront.config import DEFAULT_API_URL
from storefront.errors import (
    ERROR_INVALID_RESPONSE,
    ERROR_NETWORK,
    AuthenticationError,
    RecordNotFoundError,
    StoreResponseError,
    StoreUnavailableError,
)
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.models import AuthResult, CartRecord, Product

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

CART_ITEMS_PATH = "/cartItems"


class CartRecordStore(Protocol):
    """The subset of the record service the cart depends on."""

    async def get_cart_records(self, user_id: str) -> list[CartRecord]:
        ...

    async def create_cart_record(self, user_id: str, product: Product, quantity: int) -> CartRecord:
        ...

    async def update_cart_record_quantity(self, record_id: str, quantity: int) -> CartRecord:
        ...

    async def delete_cart_record(self, record_id: str) -> None:
        ...

    async def delete_all_cart_records_for_user(self, user_id: str) -> None:
        ...


def _parse(model: type[ModelT], data: Any) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise StoreResponseError(f"{ERROR_INVALID_RESPONSE}: {model.__name__}") from e


def _error_message(response: httpx.Response) -> str:
    """Use the service's own error text when the body carries one."""
    try:
        body = response.json()
    except ValueError:
        return ERROR_NETWORK
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {response.status_code}"


class StoreClient:
    """Client for the record service (cart records and auth endpoints)."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 10.0,
        connect_timeout: float = 5.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.connect_timeout = connect_timeout
        # Bearer token of the signed-in user, set by AuthSession
        self.token: str | None = None

        # HTTP client (lazy init unless injected)
        self._http_client = http_client

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Lazy creation of shared httpx client with timeouts."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=self.connect_timeout),
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            )
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (None when empty)."""
        client = await self._get_http_client()
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = await client.request(
                method, f"{self.base_url}{path}", params=params, json=json, headers=headers
            )
        except httpx.HTTPError as e:
            raise StoreUnavailableError(f"{ERROR_NETWORK}: {type(e).__name__}") from e

        if response.is_success:
            if not response.content:
                return None
            try:
                return response.json()
            except ValueError as e:
                raise StoreResponseError(ERROR_INVALID_RESPONSE, response.status_code) from e

        message = _error_message(response)
        if response.status_code == 404:
            raise RecordNotFoundError(message)
        if response.status_code == 401:
            raise AuthenticationError(message)
        raise StoreResponseError(message, response.status_code)

    # ==================== CART RECORDS ====================

    async def get_cart_records(self, user_id: str) -> list[CartRecord]:
        data = await self._request("GET", CART_ITEMS_PATH, params={"userId": user_id})
        if not isinstance(data, list):
            raise StoreResponseError(f"{ERROR_INVALID_RESPONSE}: expected a list of cart records")
        return [_parse(CartRecord, row) for row in data]

    async def create_cart_record(self, user_id: str, product: Product, quantity: int) -> CartRecord:
        """Persist a new cart line with a client-generated record id."""
        record_id = f"cart_{user_id}_{product.id}_{uuid.uuid4().hex[:12]}"
        payload = {
            "id": record_id,
            "userId": user_id,
            "productId": product.id,
            "product": product.model_dump(mode="json", by_alias=True),
            "quantity": quantity,
        }
        data = await self._request("POST", CART_ITEMS_PATH, json=payload)
        return _parse(CartRecord, data)

    async def update_cart_record_quantity(self, record_id: str, quantity: int) -> CartRecord:
        data = await self._request("PATCH", f"{CART_ITEMS_PATH}/{record_id}", json={"quantity": quantity})
        return _parse(CartRecord, data)

    async def delete_cart_record(self, record_id: str) -> None:
        await self._request("DELETE", f"{CART_ITEMS_PATH}/{record_id}")

    async def delete_all_cart_records_for_user(self, user_id: str) -> None:
        """Fan-out delete; the store has no bulk endpoint.

        A record that disappears between the listing and its delete counts as
        deleted. Any other failure is raised after every delete has finished.
        """
        records = await self.get_cart_records(user_id)
        results = await asyncio.gather(
            *(self.delete_cart_record(record.id) for record in records),
            return_exceptions=True,
        )
        failures = [
            r for r in results
            if isinstance(r, BaseException) and not isinstance(r, RecordNotFoundError)
        ]
        if failures:
            logger.warning(
                "Bulk cart delete for user %s: %d of %d deletes failed",
                sanitize_id_for_logging(user_id),
                len(failures),
                len(records),
            )
            raise failures[0]

    # ==================== AUTH ====================

    async def login(self, email: str, password: str) -> AuthResult:
        data = await self._request("POST", "/login", json={"email": email, "password": password})
        return _parse(AuthResult, data)

    async def register(self, name: str, email: str, password: str, confirm_password: str) -> AuthResult:
        data = await self._request(
            "POST",
            "/register",
            json={
                "name": name,
                "email": email,
                "password": password,
                "confirmPassword": confirm_password,
            },
        )
        return _parse(AuthResult, data)
