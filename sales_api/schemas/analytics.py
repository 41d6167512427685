"""Analytics schemas module.

Response schemas for the dashboard aggregation endpoints and the shared
filter model they all accept.
"""
import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


# --- Shared Filters ---

class SalesFilters(BaseModel):
    """Optional filters applied to every aggregation query."""

    start_date: Optional[datetime.date] = Field(None, description="Inclusive lower bound on sale_date")
    end_date: Optional[datetime.date] = Field(None, description="Inclusive upper bound on sale_date")
    category: Optional[str] = Field(None, description="Exact category match")
    region: Optional[str] = Field(None, description="Exact region match")
    min_rating: Optional[float] = Field(None, description="Inclusive lower bound on rating")
    search: Optional[str] = Field(None, description="Case-insensitive product name search")

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value


# --- Summary Cards ---

class SummaryResponse(BaseModel):
    """Headline totals for the filtered rows."""

    total_sales: int = Field(0, description="Number of sale rows")
    total_revenue: float = Field(0.0, description="Sum of discounted_price x quantity")
    avg_discount: float = Field(0.0, description="Average discount fraction")
    avg_rating: float = Field(0.0, description="Average rating")
    total_quantity: int = Field(0, description="Total units sold")


# --- Revenue Trends ---

class TrendPoint(BaseModel):
    """Revenue for one date bucket."""

    date: datetime.date = Field(..., description="Bucket start date")
    revenue: float = Field(..., description="Revenue in the bucket")
    sales_count: int = Field(..., description="Units sold in the bucket")


# --- Product Rankings ---

class ProductRevenue(BaseModel):
    """A product ranked by revenue."""

    product_name: str
    total_quantity: int
    total_revenue: float
    avg_rating: float


class TopReviewedProduct(BaseModel):
    """A product ranked by number of reviews."""

    product_name: str
    rating_count: int = Field(..., description="Reviews recorded for the product")
    rating: float = Field(..., description="Average rating")


# --- Dimension Breakdowns ---

class RegionRevenue(BaseModel):
    """Revenue for one region."""

    region: str
    total_revenue: float
    total_quantity: int


class CategoryRevenue(BaseModel):
    """Revenue, product count and rating for one category."""

    category: str
    total_revenue: float
    total_quantity: int
    product_count: int = Field(..., description="Distinct products in the category")
    avg_rating: float


# --- Discount Histogram ---

class DiscountBucket(BaseModel):
    """Row count for one 10%-wide discount band."""

    bucket: str = Field(..., description="Band label, e.g. '10-20%'")
    min: int = Field(..., description="Band lower bound in percent")
    max: int = Field(..., description="Band upper bound in percent")
    count: int = Field(..., description="Rows whose discount falls in the band")


# --- Filter Options ---

class DateRange(BaseModel):
    """Earliest and latest sale dates on record."""

    min_date: Optional[datetime.date] = None
    max_date: Optional[datetime.date] = None


class FilterOptionsResponse(BaseModel):
    """Values available to populate the filter controls."""

    categories: list[str] = Field(default_factory=list)
    regions: list[str] = Field(default_factory=list)
    date_range: DateRange = Field(
        default_factory=DateRange,
        alias="dateRange",
    )

    class Config:
        populate_by_name = True
