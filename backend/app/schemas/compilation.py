from typing import Optional

from pydantic import Field, field_validator

from app.schemas.base import CamelModel
from app.schemas.event import EventShortResponse


class CompilationCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=50)
    pinned: bool = False
    events: list[int] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be blank")
        return value


class CompilationUpdate(CamelModel):
    """None leaves a field unchanged; an empty events list clears the compilation."""

    title: Optional[str] = Field(None, min_length=1, max_length=50)
    pinned: Optional[bool] = None
    events: Optional[list[int]] = None


class CompilationResponse(CamelModel):
    id: int
    title: str
    pinned: bool
    events: list[EventShortResponse]
