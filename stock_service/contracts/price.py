from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class PricePoint(BaseModel):
    """A single price observation as published by the upstream service."""
    price: float = Field(..., allow_inf_nan=False)
    # Kept verbatim; parsed on demand by the window filter.
    last_updated_at: Optional[str] = Field(default=None, alias="lastUpdatedAt")

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")
