"""
Storefront Client Package

- cart: optimistic cart with remote mirroring (ledger, identity index,
  manager, session bridge)
- auth: signed-in identity and change notification
- services: record service client and money helpers
- app: the Storefront container tying them together

Note: Imports are lazy to keep `import storefront` cheap.
"""

__all__ = [
    "Storefront",
    "StoreSettings",
]


def __getattr__(name):
    """Lazy attribute access."""
    if name == "Storefront":
        from storefront.app import Storefront
        return Storefront
    if name == "StoreSettings":
        from storefront.config import StoreSettings
        return StoreSettings
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
