"""Sale record model module."""
from datetime import date, datetime

from sqlalchemy import CheckConstraint, Date, DateTime, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from sales_api.database.database import Base


class Sale(Base):
    """One imported sale row. Rows are only ever bulk-inserted and read."""

    __tablename__ = "sales"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_sales_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[str] = mapped_column(String(50), nullable=False)
    product_name: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    discounted_price: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=False, default=0
    )
    actual_price: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=False, default=0
    )
    discount_percentage: Mapped[float] = mapped_column(
        Numeric(5, 4, asdecimal=False), nullable=False, default=0
    )
    rating: Mapped[float] = mapped_column(
        Numeric(3, 1, asdecimal=False), nullable=False, default=0
    )
    rating_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    region: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    sale_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )
