"""
Pydantic schemas for the storefront API.

Field names follow the JSON the shop front end sends and reads (camelCase).
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class ApiResponse(BaseModel):
    success: bool
    data: Optional[Any] = None
    message: Optional[str] = None
    pagination: Optional[Pagination] = None
    stats: Optional[dict] = None


class AuthRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    action: Literal["login", "register"] = "login"
    name: Optional[str] = None
    phone: Optional[str] = None
    remember_me: bool = Field(default=False, alias="rememberMe")

    model_config = {"populate_by_name": True}


class UserUpdateRequest(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[Literal["admin", "user"]] = None
    isActive: Optional[bool] = None


class OrderItem(BaseModel):
    productId: Optional[int] = None
    productName: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    price: float = Field(default=0, ge=0)


class ShippingAddress(BaseModel):
    street: str = ""
    city: str = ""
    postalCode: str = ""
    province: str = ""


class OrderCreateRequest(BaseModel):
    customerName: Optional[str] = None
    customerEmail: Optional[str] = None
    customerPhone: Optional[str] = None
    items: Optional[list[OrderItem]] = None
    shippingAddress: Optional[ShippingAddress] = None
    paymentMethod: Optional[
        Literal["credit_card", "bank_transfer", "cash_on_delivery"]
    ] = None
    notes: Optional[str] = None


class OrderUpdateRequest(BaseModel):
    id: Optional[int] = None
    status: Optional[
        Literal["pending", "processing", "shipped", "delivered", "cancelled"]
    ] = None
    paymentStatus: Optional[Literal["pending", "paid", "failed", "refunded"]] = None
    shippingDate: Optional[str] = None
    deliveryDate: Optional[str] = None
    notes: Optional[str] = None


class OrderCancelRequest(BaseModel):
    orderId: Optional[int] = None


class ReviewCreateRequest(BaseModel):
    productId: Optional[int] = None
    rating: Optional[int] = None
    comment: Optional[str] = None
    userAvatar: Optional[str] = None


class ReviewUpdateRequest(BaseModel):
    id: Optional[int] = None
    rating: Optional[int] = None
    comment: Optional[str] = None


class AdminReviewUpdateRequest(BaseModel):
    id: Optional[int] = None
    action: Optional[str] = None
    verified: Optional[bool] = None
    comment: Optional[str] = None
    rating: Optional[int] = None


class ProductCreateRequest(BaseModel):
    name: Optional[str] = None
    price: Optional[float] = None
    stock: int = Field(default=0, ge=0)
    imageUrl: Optional[str] = None


class UploadUrlRequest(BaseModel):
    imageUrl: Optional[str] = None
    folder: str = "products"
