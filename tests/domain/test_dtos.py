"""Value checks on the service-boundary DTOs."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from txflow_kernel.domain.clock import DeterministicClock
from txflow_kernel.domain.dtos import (
    HeaderChanges,
    ItemSpec,
    LineageView,
    VersionRecord,
)


class TestItemSpec:

    def test_line_total(self):
        item = ItemSpec("Laptop", Decimal("2"), Decimal("750000"))
        assert item.line_total == Decimal("1500000")

    def test_construction_does_not_validate(self):
        # Rejection happens in validate_items, where the item index is known.
        item = ItemSpec("", Decimal("0"), Decimal("-1"))
        assert item.line_total == Decimal("0")

    def test_free_item_allowed(self):
        assert ItemSpec("Sample", Decimal("1"), Decimal("0")).line_total == Decimal("0")


def test_header_changes_assigned_skips_none():
    changes = HeaderChanges(vendor_name="PT A", invoice_number=None, cost_center="CC-1")
    assert changes.assigned() == {"vendor_name": "PT A", "cost_center": "CC-1"}


def test_lineage_active_versions():
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    lineage = LineageView("TRX-1", (
        VersionRecord("TRX-1", 1, "superseded", False, now),
        VersionRecord("TRX-1", 2, "resubmitted", True, now),
    ))
    assert [v.version for v in lineage.active_versions] == [2]


class TestDeterministicClock:

    def test_now_is_stable_until_advanced(self):
        clock = DeterministicClock()
        first = clock.now()
        assert clock.now() == first
        assert clock.advance(hours=2) == first + timedelta(hours=2)

    def test_rejects_naive_datetimes(self):
        with pytest.raises(ValueError):
            DeterministicClock(datetime(2024, 1, 1))
        clock = DeterministicClock()
        with pytest.raises(ValueError):
            clock.set_time(datetime(2024, 1, 1))

    def test_set_time_normalises_to_utc(self):
        clock = DeterministicClock()
        wib = timezone(timedelta(hours=7))
        clock.set_time(datetime(2024, 1, 1, 14, 0, tzinfo=wib))
        assert clock.now() == datetime(2024, 1, 1, 7, 0, tzinfo=timezone.utc)
        assert clock.now().tzinfo == timezone.utc
