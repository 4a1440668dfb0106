"""Environment-driven settings for the storefront client."""

import os
from dataclasses import dataclass
from enum import Enum

DEFAULT_API_URL = "http://localhost:3001"


class LoginPolicy(str, Enum):
    """What happens to anonymous cart items when a user logs in."""

    REPLACE = "replace"  # Remote cart wins, anonymous items are dropped
    MERGE = "merge"  # Anonymous items are re-added on top of the remote cart


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


@dataclass
class StoreSettings:
    """Connection and cart policy settings."""

    api_url: str = DEFAULT_API_URL
    timeout: float = 10.0
    connect_timeout: float = 5.0
    login_policy: LoginPolicy = LoginPolicy.REPLACE
    keep_index_on_failed_delete: bool = False

    @classmethod
    def from_env(cls) -> "StoreSettings":
        """Build settings from STORE_* and CART_* environment variables."""
        policy_raw = os.environ.get("CART_LOGIN_POLICY", LoginPolicy.REPLACE.value).strip().lower()
        try:
            login_policy = LoginPolicy(policy_raw)
        except ValueError:
            raise ValueError(f"CART_LOGIN_POLICY must be 'replace' or 'merge', got {policy_raw!r}") from None

        return cls(
            api_url=os.environ.get("STORE_API_URL", DEFAULT_API_URL).rstrip("/"),
            timeout=_env_float("STORE_TIMEOUT", 10.0),
            connect_timeout=_env_float("STORE_CONNECT_TIMEOUT", 5.0),
            login_policy=login_policy,
            keep_index_on_failed_delete=_env_bool("CART_KEEP_INDEX_ON_FAILED_DELETE", False),
        )
