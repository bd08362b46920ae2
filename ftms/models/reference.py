"""
Reference (lookup) tables.

Categories, payment methods, payment statuses and revenue sources are
seeded once and read on almost every request, which is why lookups go
through the reference cache in services/reference_cache.py.
"""

from datetime import datetime

from sqlalchemy import String, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from ftms.models.base import Base


class GlobalCategory(Base):
    __tablename__ = "global_categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    # "revenue", "expense", or NULL for both
    module: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<GlobalCategory {self.name}>"


class GlobalPaymentMethod(Base):
    __tablename__ = "global_payment_methods"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<GlobalPaymentMethod {self.name}>"


class GlobalPaymentStatus(Base):
    __tablename__ = "global_payment_statuses"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    # Comma-separated module names, e.g. "revenue,expense"
    applicable_modules: Mapped[str] = mapped_column(
        String(255), nullable=False, default=""
    )
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def applies_to(self, module: str) -> bool:
        modules = {m.strip().lower() for m in self.applicable_modules.split(",")}
        return module.lower() in modules

    def __repr__(self) -> str:
        return f"<GlobalPaymentStatus {self.name}>"


class RevenueSource(Base):
    __tablename__ = "revenue_sources"

    id: Mapped[int] = mapped_column(primary_key=True)
    source_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    # Revenue account credited by the auto journal entry
    account_code: Mapped[str | None] = mapped_column(String(4), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<RevenueSource {self.source_code}>"
