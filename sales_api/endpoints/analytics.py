"""Analytics endpoint module.

Provides the dashboard aggregation endpoints. All of them accept the
shared filter query parameters (startDate, endDate, category, region,
minRating, search).
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from sales_api.database.database import get_db
from sales_api.exceptions.api_exception import BadRequestError
from sales_api.schemas.analytics import (
    CategoryRevenue,
    DiscountBucket,
    FilterOptionsResponse,
    ProductRevenue,
    RegionRevenue,
    SalesFilters,
    SummaryResponse,
    TopReviewedProduct,
    TrendPoint,
)
from sales_api.schemas.sale import SaleTableResponse
from sales_api.services.analytics_service import (
    DEFAULT_GRANULARITY,
    DEFAULT_LIMIT,
    DEFAULT_PAGE_SIZE,
    DEFAULT_SORT_COLUMN,
    DEFAULT_SORT_ORDER,
    compute_summary,
    compute_trends,
    discount_distribution,
    filter_options,
    list_sales,
    revenue_by_category,
    revenue_by_region,
    top_products,
    top_reviewed,
)

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


def get_filters(
    start_date: Optional[str] = Query(
        default=None,
        alias="startDate",
        description="Earliest sale date, inclusive (ISO 8601 format)",
    ),
    end_date: Optional[str] = Query(
        default=None,
        alias="endDate",
        description="Latest sale date, inclusive (ISO 8601 format)",
    ),
    category: Optional[str] = Query(default=None, description="Exact category"),
    region: Optional[str] = Query(default=None, description="Exact region"),
    min_rating: Optional[str] = Query(
        default=None,
        alias="minRating",
        description="Minimum rating, inclusive",
    ),
    search: Optional[str] = Query(
        default=None,
        description="Case-insensitive product name search",
    ),
) -> SalesFilters:
    """Collect the shared filter parameters. Blank values are ignored."""
    try:
        return SalesFilters(
            start_date=start_date,
            end_date=end_date,
            category=category,
            region=region,
            min_rating=min_rating,
            search=search,
        )
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        raise BadRequestError(detail=f"Invalid filter value ({problems})") from exc


@router.get("/summary", response_model=SummaryResponse)
async def get_summary(
    filters: SalesFilters = Depends(get_filters),
    db: AsyncSession = Depends(get_db),
) -> SummaryResponse:
    """
    Get headline totals for the filtered sales.

    - **total_sales**: Number of sale rows
    - **total_revenue**: Sum of discounted price x quantity
    - **avg_discount**: Average discount (0-1 fraction)
    - **avg_rating**: Average rating
    - **total_quantity**: Units sold
    """
    return await compute_summary(db=db, filters=filters)


@router.get("/trends", response_model=list[TrendPoint])
async def get_trends(
    granularity: str = Query(
        default=DEFAULT_GRANULARITY,
        description="Bucket size: daily, weekly or monthly",
    ),
    filters: SalesFilters = Depends(get_filters),
    db: AsyncSession = Depends(get_db),
) -> list[TrendPoint]:
    """
    Get revenue and units per date bucket, oldest first.

    Weekly buckets start on Monday, monthly buckets on the 1st.
    """
    return await compute_trends(db=db, filters=filters, granularity=granularity)


@router.get("/products", response_model=list[ProductRevenue])
async def get_top_products(
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, description="Number of products"),
    filters: SalesFilters = Depends(get_filters),
    db: AsyncSession = Depends(get_db),
) -> list[ProductRevenue]:
    """Get the top products by revenue."""
    return await top_products(db=db, filters=filters, limit=limit)


@router.get("/top-reviewed", response_model=list[TopReviewedProduct])
async def get_top_reviewed(
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, description="Number of products"),
    filters: SalesFilters = Depends(get_filters),
    db: AsyncSession = Depends(get_db),
) -> list[TopReviewedProduct]:
    """Get the most-reviewed products."""
    return await top_reviewed(db=db, filters=filters, limit=limit)


@router.get("/regions", response_model=list[RegionRevenue])
async def get_regions(
    filters: SalesFilters = Depends(get_filters),
    db: AsyncSession = Depends(get_db),
) -> list[RegionRevenue]:
    """Get revenue and units per region, highest revenue first."""
    return await revenue_by_region(db=db, filters=filters)


@router.get("/categories", response_model=list[CategoryRevenue])
async def get_categories(
    filters: SalesFilters = Depends(get_filters),
    db: AsyncSession = Depends(get_db),
) -> list[CategoryRevenue]:
    """
    Get per-category figures, highest revenue first.

    Includes the number of distinct products and the average rating.
    """
    return await revenue_by_category(db=db, filters=filters)


@router.get("/discount-distribution", response_model=list[DiscountBucket])
async def get_discount_distribution(
    filters: SalesFilters = Depends(get_filters),
    db: AsyncSession = Depends(get_db),
) -> list[DiscountBucket]:
    """Get row counts for the ten 10%-wide discount bands."""
    return await discount_distribution(db=db, filters=filters)


@router.get("/table", response_model=SaleTableResponse)
async def get_table(
    page: int = Query(default=1, description="Page number (1-based)"),
    limit: int = Query(
        default=DEFAULT_PAGE_SIZE,
        description="Rows per page (at most 100)",
    ),
    sort_by: str = Query(
        default=DEFAULT_SORT_COLUMN,
        alias="sortBy",
        description="Column to sort by; unknown columns sort by sale_date",
    ),
    sort_order: str = Query(
        default=DEFAULT_SORT_ORDER,
        alias="sortOrder",
        description="asc or desc",
    ),
    filters: SalesFilters = Depends(get_filters),
    db: AsyncSession = Depends(get_db),
) -> SaleTableResponse:
    """
    Get one page of sale rows.

    Returns:
    - **data**: Rows on the page
    - **total**: Rows matching the filters
    - **page** / **limit**: Effective paging values
    - **totalPages**: Page count at this page size
    """
    return await list_sales(
        db=db,
        filters=filters,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.get("/filters", response_model=FilterOptionsResponse)
async def get_filter_options(
    db: AsyncSession = Depends(get_db),
) -> FilterOptionsResponse:
    """Get the categories, regions and date range available for filtering."""
    return await filter_options(db=db)
