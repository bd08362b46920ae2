"""
Local projection of bus-trip assignments owned by the Operations system.

Rows are upserted from the Operations API. This service only ever flips
is_revenue_recorded / is_expense_recorded; trip financials are never
written back upstream.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, DateTime, Numeric, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from ftms.models.base import Base


class BusTripCache(Base):
    __tablename__ = "bus_trip_cache"
    __table_args__ = (
        UniqueConstraint("assignment_id", "bus_trip_id", name="uq_bus_trip_assignment"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    assignment_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    bus_trip_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    bus_route: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    date_assigned: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    assignment_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    assignment_value: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    trip_revenue: Mapped[Decimal | None] = mapped_column(Numeric(19, 4), nullable=True)
    trip_fuel_expense: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    driver_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    driver_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    conductor_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    conductor_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bus_plate_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_revenue_recorded: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    is_expense_recorded: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_synced_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<BusTripCache {self.assignment_id}/{self.bus_trip_id}>"
