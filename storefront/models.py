# storefront/models.py
from datetime import datetime, timezone
from typing import Optional, List, Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["user", "admin"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------
# Persisted records
# ---------------------------
class User(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    email: str
    password: str  # argon2 hash, never plaintext
    role: Role = "user"
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")


class Product(BaseModel):
    id: int
    name: str
    price: float = Field(ge=0)
    category: str
    description: Optional[str] = None
    image: Optional[str] = None


class Document(BaseModel):
    users: List[User] = Field(default_factory=list)
    products: List[Product] = Field(default_factory=list)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------
# Request / response schemas
# ---------------------------
class ProductIn(BaseModel):
    name: str
    price: float
    category: str = "general"
    description: Optional[str] = None
    image: Optional[str] = None


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    price: Optional[float] = None
    category: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None


class RegisterIn(BaseModel):
    name: str = ""
    email: str = ""
    password: str = ""


class LoginIn(BaseModel):
    email: str = ""
    password: str = ""


class PublicUser(BaseModel):
    """User as shown to clients: everything but the credential."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    email: str
    role: Role
    created_at: datetime = Field(alias="createdAt")
