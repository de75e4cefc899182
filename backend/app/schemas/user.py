"""
Pydantic schemas for the user directory.
"""

from pydantic import EmailStr, Field

from app.schemas.base import CamelModel


class UserCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=250)
    email: EmailStr = Field(..., max_length=254)


class UserResponse(CamelModel):
    id: int
    name: str
    email: str


class UserShortResponse(CamelModel):
    id: int
    name: str
