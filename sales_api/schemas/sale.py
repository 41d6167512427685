"""Sale record schemas module."""
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field


class SaleResponse(BaseModel):
    """Full projection of one stored sale row."""

    id: int = Field(..., description="Surrogate row ID")
    product_id: str = Field(..., description="Product identifier from the upload")
    product_name: str = Field(..., description="Product display name")
    category: str = Field(..., description="Top-level product category")
    discounted_price: float = Field(..., ge=0, description="Selling price")
    actual_price: float = Field(..., ge=0, description="List price (MRP)")
    discount_percentage: float = Field(..., description="Discount as a 0-1 fraction")
    rating: float = Field(..., description="Average customer rating")
    rating_count: int = Field(..., ge=0, description="Number of ratings")
    quantity: int = Field(..., ge=1, description="Units sold")
    region: str = Field(..., description="Sales region")
    sale_date: date = Field(..., description="Date of sale")
    created_at: Optional[datetime] = Field(None, description="Import timestamp")

    class Config:
        from_attributes = True


class SaleTableResponse(BaseModel):
    """Schema for the paginated, sortable sales table."""

    data: list[SaleResponse] = Field(
        default_factory=list, description="Rows on the requested page"
    )
    total: int = Field(..., description="Rows matching the active filters")
    page: int = Field(..., description="Current page number (1-based)")
    limit: int = Field(..., description="Rows per page")
    total_pages: int = Field(
        ...,
        alias="totalPages",
        description="Number of pages at this page size",
    )

    class Config:
        populate_by_name = True
