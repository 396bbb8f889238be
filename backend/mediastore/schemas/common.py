"""Shared Pydantic schemas."""
from pydantic import BaseModel, field_validator


class PaginationParams(BaseModel):
    """limit/offset for listings. Negative values become 0; a zero limit means no rows."""
    limit: int = 20
    offset: int = 0

    @field_validator("limit", "offset", mode="before")
    @classmethod
    def negative_to_zero(cls, v):
        if isinstance(v, int) and v < 0:
            return 0
        return v

    def capped(self, max_limit: int) -> "PaginationParams":
        return PaginationParams(limit=min(self.limit, max_limit), offset=self.offset)
