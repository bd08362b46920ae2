"""
Reference data: categories, payment methods, payment
statuses and revenue sources.

Lookups by name go through reference_cache and return row ids only;
ORM instances are never cached because they belong to one session.
Every write here invalidates the matching cache prefix.
"""

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from ftms.exceptions import NotFoundError, DuplicateError
from ftms.logging_config import get_logger
from ftms.models.reference import (
    GlobalCategory,
    GlobalPaymentMethod,
    GlobalPaymentStatus,
    RevenueSource,
)
from ftms.services.reference_cache import reference_cache, TTLCache

logger = get_logger(__name__)

CATEGORY_PREFIX = "category:"
PAYMENT_METHOD_PREFIX = "payment_method:"
PAYMENT_STATUS_PREFIX = "payment_status:"


class ReferenceDataService:

    def __init__(self, db: Session, cache: TTLCache | None = None):
        self.db = db
        self.cache = cache if cache is not None else reference_cache

    # -- lookups ---------------------------------------------------------

    def find_category_id(self, name: str) -> int | None:
        """Id of the non-deleted category with exactly this name."""
        def load():
            return self.db.execute(
                select(GlobalCategory.id)
                .where(
                    GlobalCategory.name == name,
                    GlobalCategory.is_deleted.is_(False),
                )
                .order_by(GlobalCategory.id)
                .limit(1)
            ).scalar_one_or_none()

        return self.cache.get_or_set(f"{CATEGORY_PREFIX}{name}", load)

    def find_payment_method_id(self, name: str) -> int | None:
        """Id of the non-deleted payment method, matched case-insensitively."""
        key = name.strip().lower()

        def load():
            return self.db.execute(
                select(GlobalPaymentMethod.id)
                .where(
                    func.lower(GlobalPaymentMethod.name) == key,
                    GlobalPaymentMethod.is_deleted.is_(False),
                )
                .order_by(GlobalPaymentMethod.id)
                .limit(1)
            ).scalar_one_or_none()

        return self.cache.get_or_set(f"{PAYMENT_METHOD_PREFIX}{key}", load)

    def find_payment_status_id(self, name: str, module: str) -> int | None:
        """Id of the status called name (any case) that applies to module."""
        key = name.strip().lower()

        def load():
            statuses = self.db.execute(
                select(GlobalPaymentStatus)
                .where(
                    func.lower(GlobalPaymentStatus.name) == key,
                    GlobalPaymentStatus.is_deleted.is_(False),
                )
                .order_by(GlobalPaymentStatus.id)
            ).scalars().all()
            for status in statuses:
                if status.applies_to(module):
                    return status.id
            return None

        return self.cache.get_or_set(
            f"{PAYMENT_STATUS_PREFIX}{module.lower()}:{key}", load
        )

    # -- writes ----------------------------------------------------------

    def create_category(self, name: str, module: str | None = None) -> GlobalCategory:
        category = GlobalCategory(name=name, module=module)
        self.db.add(category)
        self.db.flush()
        self.cache.invalidate(CATEGORY_PREFIX)
        return category

    def delete_category(self, category_id: int) -> GlobalCategory:
        """Soft-delete a category."""
        category = self.db.get(GlobalCategory, category_id)
        if not category or category.is_deleted:
            raise NotFoundError(f"Category {category_id} not found")
        category.is_deleted = True
        self.db.flush()
        self.cache.invalidate(CATEGORY_PREFIX)
        return category

    def create_payment_method(self, name: str, is_active: bool = True) -> GlobalPaymentMethod:
        if self.find_payment_method_id(name) is not None:
            raise DuplicateError(f"Payment method '{name}' already exists")
        method = GlobalPaymentMethod(name=name, is_active=is_active)
        self.db.add(method)
        self.db.flush()
        self.cache.invalidate(PAYMENT_METHOD_PREFIX)
        return method

    def delete_payment_method(self, method_id: int) -> GlobalPaymentMethod:
        method = self.db.get(GlobalPaymentMethod, method_id)
        if not method or method.is_deleted:
            raise NotFoundError(f"Payment method {method_id} not found")
        method.is_deleted = True
        self.db.flush()
        self.cache.invalidate(PAYMENT_METHOD_PREFIX)
        return method

    def create_payment_status(
        self, name: str, applicable_modules: list[str]
    ) -> GlobalPaymentStatus:
        status = GlobalPaymentStatus(
            name=name,
            applicable_modules=",".join(m.strip().lower() for m in applicable_modules),
        )
        self.db.add(status)
        self.db.flush()
        self.cache.invalidate(PAYMENT_STATUS_PREFIX)
        return status

    def create_revenue_source(
        self,
        source_code: str,
        name: str,
        account_code: str | None = None,
        is_active: bool = True,
    ) -> RevenueSource:
        existing = self.db.execute(
            select(RevenueSource).where(RevenueSource.source_code == source_code)
        ).scalar_one_or_none()
        if existing:
            raise DuplicateError(f"Revenue source '{source_code}' already exists")

        source = RevenueSource(
            source_code=source_code,
            name=name,
            account_code=account_code,
            is_active=is_active,
        )
        self.db.add(source)
        self.db.flush()
        return source
