"""Filter predicate module.

Builds the WHERE conditions shared by every analytics query. Each filter
value goes through a SQLAlchemy column operator, so it is always sent as a
bound parameter and never spliced into the SQL text.
"""
from typing import Optional

from sqlalchemy import ColumnElement

from sales_api.models.sale import Sale
from sales_api.schemas.analytics import SalesFilters


def build_predicate(filters: Optional[SalesFilters] = None) -> list[ColumnElement[bool]]:
    """
    Translate the active filters into a list of AND-ed conditions.

    Absent filters add nothing, so an empty list matches every row.

    Args:
        filters: Active dashboard filters (None means no filtering)

    Returns:
        Conditions suitable for ``select(...).where(*conditions)``
    """
    if filters is None:
        return []

    conditions: list[ColumnElement[bool]] = []
    if filters.start_date:
        conditions.append(Sale.sale_date >= filters.start_date)
    if filters.end_date:
        conditions.append(Sale.sale_date <= filters.end_date)
    if filters.category:
        conditions.append(Sale.category == filters.category)
    if filters.region:
        conditions.append(Sale.region == filters.region)
    if filters.min_rating is not None:
        conditions.append(Sale.rating >= filters.min_rating)
    if filters.search:
        # autoescape makes % and _ in the search text match literally
        conditions.append(Sale.product_name.icontains(filters.search, autoescape=True))
    return conditions
