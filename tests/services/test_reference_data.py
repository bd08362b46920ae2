"""
Tests for the TTL reference cache and ReferenceDataService lookups.
"""

import pytest

from ftms.exceptions import DuplicateError, NotFoundError
from ftms.services.reference_cache import TTLCache
from ftms.services.reference_data import ReferenceDataService


class FakeClock:

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestTTLCache:

    def test_entries_expire_after_ttl(self):
        clock = FakeClock()
        cache = TTLCache(30, clock=clock)
        cache.set("category:Boundary", 1)

        clock.now += 29
        assert cache.get("category:Boundary") == 1
        clock.now += 1
        assert cache.get("category:Boundary") is None

    def test_get_or_set_calls_loader_once(self):
        cache = TTLCache(30, clock=FakeClock())
        calls = []

        def loader():
            calls.append(1)
            return 7

        assert cache.get_or_set("k", loader) == 7
        assert cache.get_or_set("k", loader) == 7
        assert len(calls) == 1

    def test_none_is_not_cached(self):
        cache = TTLCache(30, clock=FakeClock())
        calls = []

        def loader():
            calls.append(1)
            return None

        cache.get_or_set("missing", loader)
        cache.get_or_set("missing", loader)
        assert len(calls) == 2
        assert len(cache) == 0

    def test_invalidate_by_prefix(self):
        cache = TTLCache(30, clock=FakeClock())
        cache.set("category:Boundary", 1)
        cache.set("category:Percentage", 2)
        cache.set("payment_method:cash", 3)

        cache.invalidate("category:")
        assert cache.get("category:Boundary") is None
        assert cache.get("payment_method:cash") == 3

        cache.invalidate()
        assert len(cache) == 0

    def test_ttl_must_be_positive(self):
        with pytest.raises(ValueError):
            TTLCache(0)


class TestReferenceDataService:

    def test_lookups(self, db_session, reference_data):
        service = ReferenceDataService(db_session)
        assert service.find_category_id("Boundary") == reference_data["boundary"].id
        assert service.find_category_id("boundary") is None
        assert service.find_payment_method_id("  CASH ") == reference_data["cash"].id
        assert service.find_payment_status_id("pending", "Expense") == reference_data["pending"].id
        assert service.find_payment_status_id("Pending", "payroll") is None

    def test_lookup_is_served_from_cache(self, db_session, reference_data):
        cache = TTLCache(300, clock=FakeClock())
        service = ReferenceDataService(db_session, cache=cache)
        method_id = service.find_payment_method_id("Cash")

        # Renaming behind the service's back is not seen until invalidation
        reference_data["cash"].name = "Petty Cash"
        db_session.commit()
        assert service.find_payment_method_id("cash") == method_id

        cache.invalidate()
        assert service.find_payment_method_id("cash") is None

    def test_delete_invalidates_cache(self, db_session, reference_data):
        service = ReferenceDataService(db_session)
        assert service.find_category_id("Fuel") is not None

        service.delete_category(reference_data["fuel"].id)
        assert service.find_category_id("Fuel") is None

        with pytest.raises(NotFoundError):
            service.delete_category(reference_data["fuel"].id)

    def test_deleted_payment_method_not_found(self, db_session, reference_data):
        service = ReferenceDataService(db_session)
        service.find_payment_method_id("Bank Transfer")
        service.delete_payment_method(reference_data["bank"].id)
        assert service.find_payment_method_id("bank transfer") is None

    def test_duplicates_rejected(self, db_session, reference_data):
        service = ReferenceDataService(db_session)
        with pytest.raises(DuplicateError):
            service.create_payment_method("cash")
        with pytest.raises(DuplicateError):
            service.create_revenue_source("TRIP", "Trip Revenue again")
