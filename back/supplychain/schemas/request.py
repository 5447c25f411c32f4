# supplychain/schemas/request - тела запросов API
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class RegisterRequest(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1)
    password: str
    key: Optional[str] = None  # ADMIN_KEY -> роль admin


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProductCreate(BaseModel):
    # допускаем доп. поля: каталог живёт в документном хранилище
    model_config = ConfigDict(extra="allow")

    name: str
    category: str
    price: float = Field(..., ge=0)
    min_stock_level: int = Field(0, ge=0)
    supplier_id: Optional[str] = None


class OrderItem(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)


class DeliveryAddress(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    address: str


class OrderCreate(BaseModel):
    products: List[OrderItem] = Field(..., min_length=1)
    delivery_address: DeliveryAddress


class ApiResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: Optional[Any] = None


class LoginResponse(BaseModel):
    success: bool = True
    message: str = "Login successful"
    token: str
    token_type: Literal["bearer"] = "bearer"


class UserOut(BaseModel):
    id: str
    email: EmailStr
    name: str
    role: Literal["admin", "user"]


class CurrentUser(BaseModel):
    """То, что достаём из JWT."""
    id: str
    email: Optional[str] = None
    role: str = "user"

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "CurrentUser":
        return cls(id=claims["sub"], email=claims.get("email"), role=claims.get("role") or "user")
