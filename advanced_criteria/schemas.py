from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


Direction = Literal["ASC", "DESC"]


class FindOptions(BaseModel):
    """Ordering and pagination arguments shared by the find methods."""

    order_by: Dict[str, Direction] = Field(default_factory=dict)
    limit: Optional[int] = Field(default=None, ge=0, strict=True)
    offset: Optional[int] = Field(default=None, ge=0, strict=True)

    model_config = ConfigDict(frozen=True)

    @field_validator("order_by", mode="before")
    @classmethod
    def normalize_directions(cls, value):
        if value is None:
            return {}
        if isinstance(value, dict):
            return {
                field: direction.strip().upper() if isinstance(direction, str) else direction
                for field, direction in value.items()
            }
        return value
