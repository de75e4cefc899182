from pydantic import Field

from app.schemas.base import CamelModel


class CategoryCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=50)


class CategoryResponse(CamelModel):
    id: int
    name: str
