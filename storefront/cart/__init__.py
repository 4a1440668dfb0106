"""Cart package: ledger, identity index, sync manager and session bridge."""
from .index import RemoteIdentityIndex
from .ledger import CartLedger, Remove, Replace, SetQuantity, Upsert, reduce_cart
from .models import (
    CartEntry,
    DerivedCart,
    SyncFailure,
    SyncFailureKind,
    SyncOutcome,
    SyncStatus,
    derive_cart,
)
from .service import CartManager
from .session import SessionBridge

__all__ = [
    "CartEntry",
    "CartLedger",
    "CartManager",
    "DerivedCart",
    "RemoteIdentityIndex",
    "Remove",
    "Replace",
    "SessionBridge",
    "SetQuantity",
    "SyncFailure",
    "SyncFailureKind",
    "SyncOutcome",
    "SyncStatus",
    "Upsert",
    "derive_cart",
    "reduce_cart",
]
