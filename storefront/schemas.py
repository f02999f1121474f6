"""
Pydantic schemas for the storefront FastAPI backend.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

OrderStatus = Literal["pending", "confirmed", "shipped", "delivered"]
ContactStatus = Literal["new", "read", "replied"]


class ProductCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., max_length=5000)
    price: float = Field(..., ge=0, allow_inf_nan=False)
    category: str = Field(..., min_length=1, max_length=100)
    image_id: Optional[str] = None
    featured: Optional[bool] = None


class ProductUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    image_id: Optional[str] = None
    in_stock: Optional[bool] = None
    featured: Optional[bool] = None


class ProductResponse(BaseModel):
    id: str
    name: str
    description: str
    price: float
    category: str
    in_stock: bool
    featured: Optional[bool] = None
    image_id: Optional[str] = None
    image_url: Optional[str] = None
    created_at: float


class CategoriesResponse(BaseModel):
    categories: list[str]


class UploadUrlResponse(BaseModel):
    upload_url: str
    image_id: str


class CreatedResponse(BaseModel):
    id: str


class OrderCreateRequest(BaseModel):
    product_id: str
    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_email: str = Field(..., min_length=1, max_length=320)
    quantity: int = Field(..., ge=1)


class OrderResponse(BaseModel):
    id: str
    product_id: str
    customer_name: str
    customer_email: str
    quantity: int
    total_price: float
    status: OrderStatus
    created_at: float
    product: Optional[ProductResponse] = None


class OrderStatusRequest(BaseModel):
    status: OrderStatus


class ContactSubmitRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=1, max_length=320)
    message: str = Field(..., min_length=1, max_length=5000)


class ContactResponse(BaseModel):
    id: str
    name: str
    email: str
    message: str
    status: ContactStatus
    created_at: float


class ContactStatusRequest(BaseModel):
    status: ContactStatus


class AdminSignInRequest(BaseModel):
    email: str
    password: str


class AdminSignInResponse(BaseModel):
    success: bool


class SignInRequest(BaseModel):
    email: str
    password: str = Field(..., min_length=1)
    flow: Literal["signIn", "signUp"] = "signIn"


class SessionResponse(BaseModel):
    token: str
    token_type: Literal["bearer"] = "bearer"
    user_id: str


class SignOutResponse(BaseModel):
    signed_out: bool


class UserResponse(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    email_verification_time: Optional[float] = None
    is_anonymous: bool = False
    created_at: float


class ChangeVersionsResponse(BaseModel):
    versions: dict[str, int]


class StatusResponse(BaseModel):
    status: Literal["ok"]
