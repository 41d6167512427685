"""Analytics service module.

Aggregation queries behind the dashboard: summary cards, revenue trends,
product rankings, region/category breakdowns, the discount histogram, the
paginated sales table and the filter option lists.

Every query takes the same ``SalesFilters`` and applies the predicate from
``build_predicate``. Caller-chosen identifiers (sort column, trend
granularity) are looked up in fixed tables and never reach the SQL text.
"""
from collections import defaultdict
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sales_api.models.sale import Sale
from sales_api.schemas.analytics import (
    CategoryRevenue,
    DateRange,
    DiscountBucket,
    FilterOptionsResponse,
    ProductRevenue,
    RegionRevenue,
    SalesFilters,
    SummaryResponse,
    TopReviewedProduct,
    TrendPoint,
)
from sales_api.schemas.sale import SaleResponse, SaleTableResponse
from sales_api.services.filters import build_predicate

REVENUE = Sale.discounted_price * Sale.quantity

DEFAULT_LIMIT = 10

# =============================================================================
# TRENDS
# =============================================================================

GRANULARITIES = ("daily", "weekly", "monthly")
DEFAULT_GRANULARITY = "monthly"

# =============================================================================
# TABLE
# =============================================================================

SORTABLE_COLUMNS = {
    "product_name": Sale.product_name,
    "category": Sale.category,
    "discounted_price": Sale.discounted_price,
    "actual_price": Sale.actual_price,
    "discount_percentage": Sale.discount_percentage,
    "rating": Sale.rating,
    "rating_count": Sale.rating_count,
    "quantity": Sale.quantity,
    "region": Sale.region,
    "sale_date": Sale.sale_date,
    "created_at": Sale.created_at,
}
DEFAULT_SORT_COLUMN = "sale_date"
DEFAULT_SORT_ORDER = "desc"

DEFAULT_PAGE_SIZE = 25
MAX_PAGE_SIZE = 100

# =============================================================================
# DISCOUNT HISTOGRAM
# =============================================================================

# Upper bounds of the ten 10%-wide bands; a value on a bound belongs to
# the lower band (0.20 -> "10-20%")
DISCOUNT_BAND_UPPER_BOUNDS = tuple(round(n / 10, 1) for n in range(1, 11))


def _band_label(band: int) -> str:
    return f"{band * 10}-{(band + 1) * 10}%"


def _float(value) -> float:
    return float(value) if value is not None else 0.0


def _int(value) -> int:
    return int(value) if value is not None else 0


# =============================================================================
# SUMMARY
# =============================================================================

async def compute_summary(
    db: AsyncSession,
    filters: Optional[SalesFilters] = None,
) -> SummaryResponse:
    """
    Compute headline totals for the filtered rows.

    All metrics are zero when nothing matches.
    """
    query = select(
        func.count(Sale.id).label("total_sales"),
        func.coalesce(func.sum(REVENUE), 0).label("total_revenue"),
        func.coalesce(func.avg(Sale.discount_percentage), 0).label("avg_discount"),
        func.coalesce(func.avg(Sale.rating), 0).label("avg_rating"),
        func.coalesce(func.sum(Sale.quantity), 0).label("total_quantity"),
    ).where(*build_predicate(filters))

    row = (await db.execute(query)).one()

    return SummaryResponse(
        total_sales=_int(row.total_sales),
        total_revenue=_float(row.total_revenue),
        avg_discount=_float(row.avg_discount),
        avg_rating=_float(row.avg_rating),
        total_quantity=_int(row.total_quantity),
    )


# =============================================================================
# REVENUE TRENDS
# =============================================================================

def bucket_start(day: date, granularity: str) -> date:
    """
    Map a date to the first day of its bucket.

    - daily: the date itself
    - weekly: the Monday of its ISO week
    - monthly: the first of its month
    """
    if granularity == "daily":
        return day
    if granularity == "weekly":
        return day - timedelta(days=day.weekday())
    return day.replace(day=1)


async def compute_trends(
    db: AsyncSession,
    filters: Optional[SalesFilters] = None,
    granularity: str = DEFAULT_GRANULARITY,
) -> list[TrendPoint]:
    """
    Compute revenue and units per date bucket, oldest first.

    Daily totals come from one grouped query and are folded into week or
    month buckets here, which keeps the SQL identical across databases.
    Unknown granularities fall back to monthly.
    """
    if granularity not in GRANULARITIES:
        granularity = DEFAULT_GRANULARITY

    query = (
        select(
            Sale.sale_date,
            func.sum(REVENUE).label("revenue"),
            func.sum(Sale.quantity).label("units"),
        )
        .where(*build_predicate(filters))
        .group_by(Sale.sale_date)
        .order_by(Sale.sale_date)
    )
    rows = (await db.execute(query)).all()

    buckets: dict[date, dict[str, float]] = defaultdict(lambda: {"revenue": 0.0, "units": 0})
    for row in rows:
        sale_date = row.sale_date
        if isinstance(sale_date, str):
            sale_date = date.fromisoformat(sale_date)

        bucket = buckets[bucket_start(sale_date, granularity)]
        bucket["revenue"] += _float(row.revenue)
        bucket["units"] += _int(row.units)

    return [
        TrendPoint(
            date=bucket_date,
            revenue=round(values["revenue"], 2),
            sales_count=values["units"],
        )
        for bucket_date, values in sorted(buckets.items())
    ]


# =============================================================================
# PRODUCT RANKINGS
# =============================================================================

def _sanitize_limit(limit: int) -> int:
    return max(1, limit or DEFAULT_LIMIT)


async def top_products(
    db: AsyncSession,
    filters: Optional[SalesFilters] = None,
    limit: int = DEFAULT_LIMIT,
) -> list[ProductRevenue]:
    """Products ordered by revenue, highest first."""
    total_revenue = func.sum(REVENUE).label("total_revenue")
    query = (
        select(
            Sale.product_name,
            func.sum(Sale.quantity).label("total_quantity"),
            total_revenue,
            func.avg(Sale.rating).label("avg_rating"),
        )
        .where(*build_predicate(filters))
        .group_by(Sale.product_name)
        .order_by(total_revenue.desc(), Sale.product_name)
        .limit(_sanitize_limit(limit))
    )
    rows = (await db.execute(query)).all()

    return [
        ProductRevenue(
            product_name=row.product_name,
            total_quantity=_int(row.total_quantity),
            total_revenue=round(_float(row.total_revenue), 2),
            avg_rating=round(_float(row.avg_rating), 2),
        )
        for row in rows
    ]


async def top_reviewed(
    db: AsyncSession,
    filters: Optional[SalesFilters] = None,
    limit: int = DEFAULT_LIMIT,
) -> list[TopReviewedProduct]:
    """
    Products ordered by review count, highest first.

    ``rating_count`` is a per-product figure repeated on each of its rows,
    so the largest value recorded for the product is used.
    """
    rating_count = func.max(Sale.rating_count).label("rating_count")
    query = (
        select(
            Sale.product_name,
            rating_count,
            func.avg(Sale.rating).label("rating"),
        )
        .where(*build_predicate(filters))
        .group_by(Sale.product_name)
        .order_by(rating_count.desc(), Sale.product_name)
        .limit(_sanitize_limit(limit))
    )
    rows = (await db.execute(query)).all()

    return [
        TopReviewedProduct(
            product_name=row.product_name,
            rating_count=_int(row.rating_count),
            rating=round(_float(row.rating), 2),
        )
        for row in rows
    ]


# =============================================================================
# REGION / CATEGORY BREAKDOWNS
# =============================================================================

async def revenue_by_region(
    db: AsyncSession,
    filters: Optional[SalesFilters] = None,
) -> list[RegionRevenue]:
    """Revenue and units per region, highest revenue first."""
    total_revenue = func.sum(REVENUE).label("total_revenue")
    query = (
        select(
            Sale.region,
            total_revenue,
            func.sum(Sale.quantity).label("total_quantity"),
        )
        .where(*build_predicate(filters))
        .group_by(Sale.region)
        .order_by(total_revenue.desc(), Sale.region)
    )
    rows = (await db.execute(query)).all()

    return [
        RegionRevenue(
            region=row.region,
            total_revenue=round(_float(row.total_revenue), 2),
            total_quantity=_int(row.total_quantity),
        )
        for row in rows
    ]


async def revenue_by_category(
    db: AsyncSession,
    filters: Optional[SalesFilters] = None,
) -> list[CategoryRevenue]:
    """Revenue, units, distinct products and average rating per category."""
    total_revenue = func.sum(REVENUE).label("total_revenue")
    query = (
        select(
            Sale.category,
            total_revenue,
            func.sum(Sale.quantity).label("total_quantity"),
            func.count(func.distinct(Sale.product_id)).label("product_count"),
            func.avg(Sale.rating).label("avg_rating"),
        )
        .where(*build_predicate(filters))
        .group_by(Sale.category)
        .order_by(total_revenue.desc(), Sale.category)
    )
    rows = (await db.execute(query)).all()

    return [
        CategoryRevenue(
            category=row.category,
            total_revenue=round(_float(row.total_revenue), 2),
            total_quantity=_int(row.total_quantity),
            product_count=_int(row.product_count),
            avg_rating=round(_float(row.avg_rating), 2),
        )
        for row in rows
    ]


# =============================================================================
# DISCOUNT DISTRIBUTION
# =============================================================================

def discount_band(discount: float) -> int:
    """
    Index (0-9) of the band a discount fraction falls in.

    Mirrors the SQL CASE chain: the first upper bound the value does not
    exceed wins, anything above 0.9 lands in the last band.
    """
    for band, upper in enumerate(DISCOUNT_BAND_UPPER_BOUNDS[:-1]):
        if discount <= upper:
            return band
    return len(DISCOUNT_BAND_UPPER_BOUNDS) - 1


async def discount_distribution(
    db: AsyncSession,
    filters: Optional[SalesFilters] = None,
) -> list[DiscountBucket]:
    """
    Count rows per 10%-wide discount band.

    All ten bands are returned in order, including empty ones.
    """
    band = case(
        *[
            (Sale.discount_percentage <= upper, index)
            for index, upper in enumerate(DISCOUNT_BAND_UPPER_BOUNDS[:-1])
        ],
        else_=len(DISCOUNT_BAND_UPPER_BOUNDS) - 1,
    ).label("band")

    # Group on the subquery column; the CASE carries bound parameters and
    # PostgreSQL will not match it against a second copy in GROUP BY
    banded = select(band).where(*build_predicate(filters)).subquery()
    query = (
        select(banded.c.band, func.count().label("count"))
        .group_by(banded.c.band)
    )
    rows = (await db.execute(query)).all()
    counts = {_int(row.band): _int(row.count) for row in rows}

    return [
        DiscountBucket(
            bucket=_band_label(index),
            min=index * 10,
            max=(index + 1) * 10,
            count=counts.get(index, 0),
        )
        for index in range(len(DISCOUNT_BAND_UPPER_BOUNDS))
    ]


# =============================================================================
# SALES TABLE
# =============================================================================

def resolve_sort(sort_by: Optional[str], sort_order: Optional[str]):
    """
    Resolve caller-supplied sort options against the allow-list.

    Unknown columns fall back to ``sale_date``; anything but ``asc`` sorts
    descending.
    """
    column_name = sort_by if sort_by in SORTABLE_COLUMNS else DEFAULT_SORT_COLUMN
    column = SORTABLE_COLUMNS[column_name]
    order = "asc" if (sort_order or "").lower() == "asc" else DEFAULT_SORT_ORDER
    return column.asc() if order == "asc" else column.desc(), order


async def list_sales(
    db: AsyncSession,
    filters: Optional[SalesFilters] = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    sort_by: Optional[str] = DEFAULT_SORT_COLUMN,
    sort_order: Optional[str] = DEFAULT_SORT_ORDER,
) -> SaleTableResponse:
    """
    Return one page of filtered sale rows.

    Args:
        db: Database session
        filters: Active dashboard filters
        page: 1-based page number (values below 1 are treated as 1)
        limit: Page size, capped at 100
        sort_by: Column name from ``SORTABLE_COLUMNS``
        sort_order: ``asc`` or ``desc``

    Returns:
        SaleTableResponse with the page rows and paging totals
    """
    sanitized_page = max(1, page or 1)
    sanitized_limit = max(1, min(limit or DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE))
    conditions = build_predicate(filters)

    count_query = select(func.count(Sale.id)).where(*conditions)
    total = (await db.execute(count_query)).scalar() or 0

    order_clause, order = resolve_sort(sort_by, sort_order)
    tie_breaker = Sale.id.asc() if order == "asc" else Sale.id.desc()

    query = (
        select(Sale)
        .where(*conditions)
        .order_by(order_clause, tie_breaker)
        .offset((sanitized_page - 1) * sanitized_limit)
        .limit(sanitized_limit)
    )
    items = (await db.execute(query)).scalars().all()

    total_pages = (total + sanitized_limit - 1) // sanitized_limit if total > 0 else 1

    return SaleTableResponse(
        data=[SaleResponse.model_validate(item) for item in items],
        total=total,
        page=sanitized_page,
        limit=sanitized_limit,
        total_pages=total_pages,
    )


# =============================================================================
# FILTER OPTIONS
# =============================================================================

async def filter_options(db: AsyncSession) -> FilterOptionsResponse:
    """Distinct categories and regions plus the overall sale date range."""
    categories = await db.execute(
        select(Sale.category).where(Sale.category.is_not(None)).distinct().order_by(Sale.category)
    )
    regions = await db.execute(
        select(Sale.region).where(Sale.region.is_not(None)).distinct().order_by(Sale.region)
    )
    date_range = (
        await db.execute(select(func.min(Sale.sale_date), func.max(Sale.sale_date)))
    ).one()

    min_date, max_date = date_range
    if isinstance(min_date, str):
        min_date = date.fromisoformat(min_date)
    if isinstance(max_date, str):
        max_date = date.fromisoformat(max_date)

    return FilterOptionsResponse(
        categories=list(categories.scalars().all()),
        regions=list(regions.scalars().all()),
        date_range=DateRange(min_date=min_date, max_date=max_date),
    )
