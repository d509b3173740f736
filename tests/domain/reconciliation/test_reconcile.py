from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta, timezone
from typing import TYPE_CHECKING

import pytest

from scanledger.domain.model import RecycleStatus, ScanSource
from scanledger.domain.reconciliation import (
    entry_from_remote,
    group_local_entries,
    reconcile,
    remote_status,
    resolve_record,
)
from tests.support.entries import NOON, fixed_clock, make_entry, make_record

if TYPE_CHECKING:
    from collections.abc import Callable

    from scanledger.domain.model import Entry, RemoteRecord


def _reconcile(local, remote):  # noqa: ANN001, ANN202
    return reconcile(local, remote, clock=fixed_clock(NOON), tz=UTC)


def test_exact_match_takes_remote_points_and_keeps_photo_source() -> None:
    local = make_entry("Steel Can", material="steel", carbon_saved_kg=0.1)
    record = make_record("Steel Can", material="steel", points=500, source="text")

    (merged,) = _reconcile([local], [record])

    assert merged.id == local.id
    assert merged.carbon_saved_kg == pytest.approx(0.5)
    assert merged.source is ScanSource.PHOTO
    assert merged.recycle_status is RecycleStatus.RECYCLED
    assert merged.date == datetime(2025, 3, 14, 15, 0, tzinfo=UTC)
    assert merged.scans == local.scans


def test_reconciling_twice_changes_nothing() -> None:
    local = [
        make_entry("Steel Can", material="steel"),
        make_entry("Glass Jar", material="glass", date=NOON - timedelta(hours=1)),
    ]
    records = [
        make_record("Steel Can", material="steel", points=500),
        make_record("Cardboard Box", material="cardboard", scanned_at="2025-03-13T09:00:00Z"),
    ]

    once = _reconcile(local, records)
    twice = _reconcile(once, records)

    assert twice == once


def test_recycled_entry_is_not_downgraded() -> None:
    local = make_entry(status=RecycleStatus.RECYCLED, carbon_saved_kg=0.3)

    (merged,) = _reconcile([local], [make_record(points=0)])

    assert merged.recycle_status is RecycleStatus.RECYCLED
    assert merged.carbon_saved_kg == pytest.approx(0.3)


def test_unmatched_remote_row_becomes_an_entry() -> None:
    record = make_record(
        "Pizza Box",
        material="greasy cardboard",
        recyclable=False,
        bin="Compost",
        scan_count=3,
        source="text",
        image_path="user-1/2025-03-14/abc.jpg",
    )

    (created,) = _reconcile([], [record])

    assert created.item == "Pizza Box"
    assert created.recycle_status is RecycleStatus.NON_RECYCLABLE
    assert created.source is ScanSource.TEXT
    assert created.scan_count == 3
    assert created.raw_payload == "{}"
    assert created.remote_image_path == "user-1/2025-03-14/abc.jpg"
    assert len(created.scans) == 1


def test_unparseable_timestamp_falls_back_to_now(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="scanledger.domain.reconciliation"):
        (created,) = _reconcile([], [make_record(scanned_at="yesterday-ish")])

    assert created.date == NOON
    assert "Unusable scanned_at" in caplog.text


def test_fuzzy_match_rekeys_the_local_entry() -> None:
    local = make_entry("Plastic Bottle", material="plastic")
    record = make_record("plastic water bottle", material="plastic", points=100)

    (merged,) = _reconcile([local], [record])

    assert merged.id == local.id
    assert merged.item == "plastic water bottle"
    assert merged.item_key() == "plastic water bottle|plastic|recycling"
    assert merged.recycle_status is RecycleStatus.RECYCLED


def test_fuzzy_match_stays_within_one_day() -> None:
    local = make_entry("Plastic Bottle")
    record = make_record("plastic water bottle", scanned_at="2025-03-15T09:00:00Z")

    result = _reconcile([local], [record])

    assert len(result) == 2
    assert result[1].id == local.id


def test_material_veto_blocks_fuzzy_match() -> None:
    local = make_entry("Steel", material="steel")
    record = make_record("Steel Pot", material="iron")

    assert len(_reconcile([local], [record])) == 2


def test_colliding_local_entries_collapse_to_the_preferred_one() -> None:
    marked = make_entry("Glass Jar", material="glass")
    recycled = make_entry(
        "glass jar", material="Glass", status=RecycleStatus.RECYCLED, date=NOON - timedelta(hours=1)
    )

    groups = group_local_entries([marked, recycled], tz=UTC)
    result = _reconcile([marked, recycled], [])

    assert list(groups.values()) == [recycled]
    assert [entry.id for entry in result] == [recycled.id]


def test_output_is_newest_first() -> None:
    records = [
        make_record("Glass Jar", material="glass", scanned_at="2025-03-12T08:00:00Z"),
        make_record("Steel Can", material="steel", scanned_at="2025-03-14T08:00:00Z"),
        make_record("Paper Cup", material="paper", scanned_at="2025-03-13T08:00:00Z"),
    ]

    result = _reconcile([], records)

    assert [entry.item for entry in result] == ["Steel Can", "Paper Cup", "Glass Jar"]


def test_remote_status_from_points_and_recyclability() -> None:
    assert remote_status(make_record(points=0)) is RecycleStatus.MARKED_FOR_RECYCLE
    assert remote_status(make_record(points=5)) is RecycleStatus.RECYCLED
    assert remote_status(make_record(recyclable=False, points=5)) is (
        RecycleStatus.NON_RECYCLABLE
    )


def test_resolve_record_recomputes_keys_locally() -> None:
    record = make_record(" Steel  Can ", material="N/A", points=250)

    resolved = resolve_record(record, now=NOON, tz=UTC)

    assert resolved.key == ("2025-03-14", "steel can|unknown|recycling")
    assert resolved.carbon_saved_kg == pytest.approx(0.25)
    assert entry_from_remote(resolved).carbon_saved_kg == pytest.approx(0.25)


def _same_noon_batch() -> tuple[list[Entry], list[RemoteRecord]]:
    local = [make_entry("Plastic Bottle", material="plastic")]
    records = [
        make_record(
            "plastic water bottle",
            material="plastic",
            source="text",
            scanned_at="2025-03-14T12:00:00Z",
        ),
        make_record(
            "Steel Can", material="steel", source="text", scanned_at="2025-03-14T12:00:00Z"
        ),
    ]
    return local, records


def _tied_candidates_batch() -> tuple[list[Entry], list[RemoteRecord]]:
    local = [
        make_entry("Plastic Bottle", material="plastic"),
        make_entry("Plastic Water Bottle", material="plastic"),
    ]
    records = [
        make_record(
            "Bottle",
            material="plastic",
            points=100,
            source="text",
            scanned_at="2025-03-14T12:00:00Z",
        )
    ]
    return local, records


def _mixed_batch() -> tuple[list[Entry], list[RemoteRecord]]:
    local = [
        make_entry("Glass Jar", material="glass"),
        make_entry("Paper Cup", material="paper", date=NOON - timedelta(hours=2)),
    ]
    records = [
        make_record("glass jar lid", material="glass", points=200, source="text"),
        make_record("Paper Cup", material="paper", scanned_at="2025-03-14T10:00:00Z"),
        make_record("Pizza Box", material="cardboard", recyclable=False),
        make_record("Tin Foil", material="aluminium", scanned_at="bogus"),
    ]
    return local, records


@pytest.mark.parametrize("batch", [_same_noon_batch, _tied_candidates_batch, _mixed_batch])
def test_reconcile_is_idempotent(
    batch: Callable[[], tuple[list[Entry], list[RemoteRecord]]],
) -> None:
    local, records = batch()

    once = _reconcile(local, records)
    twice = _reconcile(once, records)

    assert twice == once


def test_tied_fuzzy_candidates_resolve_by_entry_id() -> None:
    local, records = _tied_candidates_batch()
    winner = max(local, key=lambda entry: entry.id)

    for ordering in (local, list(reversed(local))):
        statuses = {entry.id: entry.recycle_status for entry in _reconcile(ordering, records)}

        assert statuses[winner.id] is RecycleStatus.RECYCLED
        assert list(statuses.values()).count(RecycleStatus.RECYCLED) == 1


def test_same_date_entries_are_ordered_by_id() -> None:
    local, records = _same_noon_batch()

    result = _reconcile(local, records)

    assert [entry.date for entry in result] == [NOON, NOON]
    assert [entry.id for entry in result] == sorted(
        (entry.id for entry in result), reverse=True
    )


def test_out_of_range_timestamp_falls_back_to_now() -> None:
    west = timezone(timedelta(hours=-5))
    record = make_record(scanned_at="0001-01-01T00:00:00Z")

    (created,) = reconcile([], [record], clock=fixed_clock(NOON), tz=west)

    assert created.date == NOON


def test_every_remote_row_contributes_to_a_surviving_entry() -> None:
    local = [make_entry("Plastic Bottle", material="plastic", carbon_saved_kg=0.1)]
    records = [
        make_record("plastic water bottle", material="plastic", points=500, source="text"),
        make_record("Steel Can", material="steel", points=0),
        make_record("Pizza Box", material="cardboard", recyclable=False),
    ]

    result = _reconcile(local, records)

    assert len(result) == 3
    for record in records:
        resolved = resolve_record(record, now=NOON, tz=UTC)
        assert any(
            entry.day_key(tz=UTC) == resolved.day
            and entry.carbon_saved_kg >= resolved.carbon_saved_kg
            and entry.recycle_status.rank >= resolved.status.rank
            for entry in result
        )


def test_negative_points_never_produce_negative_carbon() -> None:
    local = [make_entry("Steel Can", material="steel", carbon_saved_kg=0.2)]
    records = [
        make_record("Steel Can", material="steel", points=-400),
        make_record("Glass Jar", material="glass", points=-1),
    ]

    result = _reconcile(local, records)

    assert all(entry.carbon_saved_kg >= 0 for entry in result)
    can = next(entry for entry in result if entry.id == local[0].id)
    assert can.carbon_saved_kg == pytest.approx(0.2)
    assert can.recycle_status is RecycleStatus.MARKED_FOR_RECYCLE


def test_text_row_keeps_photo_details_on_fuzzy_match() -> None:
    local = make_entry("Plastic Bottle", material="plastic")
    record = make_record("plastic water bottle", material="plastic", points=100, source="text")

    (merged,) = _reconcile([local], [record])
    (again,) = _reconcile([merged], [record])

    assert merged.id == local.id
    assert merged.item == "Plastic Bottle"
    assert merged.source is ScanSource.PHOTO
    assert merged.recycle_status is RecycleStatus.RECYCLED
    assert merged.carbon_saved_kg == pytest.approx(0.1)
    assert again == merged
