from __future__ import annotations

from datetime import timedelta

from scanledger.domain.model import (
    ClassificationResult,
    Entry,
    RecycleStatus,
    ScanSource,
    merge_status,
    status_for,
)
from tests.support.entries import NOON, make_entry, make_record, make_scan


def test_entry_synthesizes_a_scan_when_none_are_given() -> None:
    entry = make_entry(scan_count=0)

    assert len(entry.scans) == 1
    assert entry.scan_count == 1
    assert entry.scans[0].item == entry.item


def test_negative_carbon_is_clamped() -> None:
    entry = make_entry(carbon_saved_kg=-3.0)
    result = ClassificationResult(
        item="x", material="y", recyclable=True, bin="z", carbon_saved_kg=-1.0
    )

    assert entry.carbon_saved_kg == 0.0
    assert result.carbon_saved_kg == 0.0


def test_status_for_respects_recyclability() -> None:
    assert status_for(make_scan(recyclable=False), RecycleStatus.RECYCLED) is (
        RecycleStatus.NON_RECYCLABLE
    )
    assert status_for(make_scan()) is RecycleStatus.MARKED_FOR_RECYCLE
    assert status_for(make_scan(), RecycleStatus.RECYCLED) is RecycleStatus.RECYCLED


def test_merge_status_is_a_lattice_join() -> None:
    order = list(RecycleStatus)
    for lhs in order:
        for rhs in order:
            merged = merge_status(lhs, rhs)
            assert merged.rank == max(lhs.rank, rhs.rank)


def test_record_scan_prepends_and_refreshes_display_fields() -> None:
    entry = make_entry("Plastic Bottle", carbon_saved_kg=0.3, source=ScanSource.TEXT)
    later = NOON + timedelta(hours=1)
    scan = make_scan(
        "plastic water bottle",
        date=later,
        carbon_saved_kg=0.1,
        source=ScanSource.PHOTO,
        local_image_path="/tmp/bottle.jpg",
    )

    updated = entry.record_scan(scan)

    assert updated.id == entry.id
    assert updated.scans[0] is scan
    assert len(updated.scans) == 2
    assert updated.scan_count == 2
    assert updated.item == "plastic water bottle"
    assert updated.date == later
    assert updated.carbon_saved_kg == 0.3
    assert updated.source is ScanSource.PHOTO
    assert updated.local_image_path == "/tmp/bottle.jpg"


def test_record_scan_keeps_scan_count_above_retained_scans() -> None:
    entry = make_entry(scan_count=7)

    updated = entry.record_scan(make_scan())

    assert updated.scan_count == 8
    assert updated.scan_count >= len(updated.scans)


def test_record_scan_never_lowers_status() -> None:
    entry = make_entry(status=RecycleStatus.RECYCLED)

    updated = entry.record_scan(make_scan())

    assert updated.recycle_status is RecycleStatus.RECYCLED


def test_merge_with_remote_keeps_photo_details_against_text_record() -> None:
    entry = make_entry("Steel Can", material="steel", source=ScanSource.PHOTO)
    record = make_record("can", material="metal", source="text", points=500)

    merged = entry.merge_with_remote(
        record,
        date=NOON + timedelta(hours=2),
        status=RecycleStatus.RECYCLED,
        carbon_saved_kg=0.5,
    )

    assert merged.item == "Steel Can"
    assert merged.material == "steel"
    assert merged.source is ScanSource.PHOTO
    assert merged.carbon_saved_kg == 0.5
    assert merged.recycle_status is RecycleStatus.RECYCLED
    assert merged.scans == entry.scans


def test_merge_with_remote_refreshes_text_entry_from_record() -> None:
    entry = make_entry("can", material="unknown", source=ScanSource.TEXT)
    record = make_record("Steel Can", material="steel", source="photo", image_path="u/img.jpg")

    merged = entry.merge_with_remote(
        record, date=NOON, status=RecycleStatus.MARKED_FOR_RECYCLE, carbon_saved_kg=0.0
    )

    assert merged.item == "Steel Can"
    assert merged.material == "steel"
    assert merged.source is ScanSource.PHOTO
    assert merged.remote_image_path == "u/img.jpg"


def test_merge_with_remote_keeps_recycled_status() -> None:
    entry = make_entry(status=RecycleStatus.RECYCLED, carbon_saved_kg=0.9)

    merged = entry.merge_with_remote(
        make_record(),
        date=NOON,
        status=RecycleStatus.MARKED_FOR_RECYCLE,
        carbon_saved_kg=0.0,
    )

    assert merged.recycle_status is RecycleStatus.RECYCLED
    assert merged.carbon_saved_kg == 0.9


def test_mark_recycled_only_moves_recyclable_entries_forward() -> None:
    later = NOON + timedelta(minutes=5)
    marked = make_entry()
    non_recyclable = make_entry(recyclable=False)

    recycled = marked.mark_recycled(at=later)

    assert recycled.recycle_status is RecycleStatus.RECYCLED
    assert recycled.date == later
    assert recycled.mark_recycled(at=later + timedelta(hours=1)) is recycled
    assert non_recyclable.mark_recycled(at=later) is non_recyclable


def test_with_remote_image_patches_latest_scan() -> None:
    entry = make_entry().record_scan(make_scan(date=NOON + timedelta(minutes=1)))

    patched = entry.with_remote_image("user/2025-03-14/id.jpg")

    assert patched.remote_image_path == "user/2025-03-14/id.jpg"
    assert patched.scans[0].remote_image_path == "user/2025-03-14/id.jpg"
    assert patched.scans[1].remote_image_path is None


def test_entry_equality_is_by_value() -> None:
    entry = make_entry()

    assert entry == Entry(**{name: getattr(entry, name) for name in entry.__slots__})
