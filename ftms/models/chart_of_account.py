"""
Chart of accounts model.

Accounts form a two-level tree: a root account may have children,
a child may not. Accounts are never deleted, only archived with
is_active=False.
"""

from datetime import datetime

from sqlalchemy import (
    String, Boolean, DateTime, Text, ForeignKey,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ftms.models.base import Base
from ftms.models.enums import AccountType, NormalBalance


class ChartOfAccount(Base):
    __tablename__ = "chart_of_accounts"

    id: Mapped[int] = mapped_column(primary_key=True)
    account_code: Mapped[str] = mapped_column(
        String(4), unique=True, nullable=False, index=True
    )
    account_name: Mapped[str] = mapped_column(String(100), nullable=False)
    account_type: Mapped[AccountType] = mapped_column(
        SAEnum(AccountType, name="account_type_enum", create_constraint=True),
        nullable=False,
    )
    # Derived from account_type on every write; never set by callers
    normal_balance: Mapped[NormalBalance] = mapped_column(
        SAEnum(NormalBalance, name="normal_balance_enum", create_constraint=True),
        nullable=False,
    )
    parent_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("chart_of_accounts.id"), nullable=True, index=True
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_system_account: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    archived_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    archived_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    parent: Mapped["ChartOfAccount | None"] = relationship(
        remote_side=[id], back_populates="children"
    )
    children: Mapped[list["ChartOfAccount"]] = relationship(
        back_populates="parent"
    )
    journal_lines: Mapped[list["JournalEntryLine"]] = relationship(
        back_populates="account"
    )

    def __repr__(self) -> str:
        return f"<ChartOfAccount {self.account_code} ({self.account_type.value})>"
