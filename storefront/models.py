"""
Pydantic Models - Record service payloads.

The record service speaks camelCase JSON; models accept either the wire
aliases or the python field names.
"""

from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_serializer, field_validator

from storefront.services.money import parse_price, to_float


class Address(BaseModel):
    """Postal address attached to a user profile."""
    street: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    country: str = ""


class Product(BaseModel):
    """Catalog product as embedded in cart records.

    Frozen so a snapshot held by the cart cannot be edited in place.
    """
    id: str
    name: str
    description: str = ""
    price: Decimal
    original_price: Optional[Decimal] = Field(default=None, alias="originalPrice")
    images: list[str] = []
    category: str = ""
    tags: list[str] = []
    rating: float = 0.0
    review_count: int = Field(default=0, alias="reviewCount")
    stock: int = 0
    seller: str = ""
    seller_id: str = Field(default="", alias="sellerId")
    featured: bool = False
    badge: Optional[str] = None

    class Config:
        extra = "ignore"
        frozen = True
        populate_by_name = True

    @field_validator("price", "original_price", mode="before")
    @classmethod
    def convert_price_to_decimal(cls, v):
        # A malformed price must fail validation, not become a free item
        if v is None:
            return None
        return parse_price(v)

    @field_serializer("price", "original_price")
    def serialize_price(self, v: Optional[Decimal]) -> Optional[float]:
        return None if v is None else to_float(v)


class User(BaseModel):
    """Authenticated user profile."""
    id: str
    name: str = ""
    email: str = ""
    avatar: Optional[str] = None
    role: Literal["customer", "seller", "admin"] = "customer"
    joined_at: Optional[str] = Field(default=None, alias="joinedAt")
    address: Optional[Address] = None

    class Config:
        extra = "ignore"
        populate_by_name = True


class CartRecord(BaseModel):
    """One persisted cart line as stored by the record service."""
    id: str
    user_id: str = Field(alias="userId")
    product_id: str = Field(alias="productId")
    product: Product
    quantity: int

    class Config:
        extra = "ignore"
        populate_by_name = True


class AuthResult(BaseModel):
    """Response of /login and /register."""
    user: User
    token: str
