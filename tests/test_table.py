"""Tests des filtres, regroupements et formats d'affichage."""

from dataclasses import replace
from decimal import Decimal

from laconsigne.matching import Linker, LoadRecord, MatchStatus, SalesRecord
from laconsigne.table import (
    NOT_RECONCILED,
    RECONCILED,
    cluster_records,
    filter_groups,
    filter_records,
    format_number,
    group_records,
    row_category,
    sort_groups_reconciled_first,
    sort_reconciled_first,
    unique_varieties,
)


def _records():
    load = [
        LoadRecord("Z1C0801483", 100, "APPLE"),
        LoadRecord("Z1C0801999", 60, "PEAR"),
        LoadRecord("Z1C0801999", 40, "PEAR"),
        LoadRecord("Z1C0803333", 10, "APPLE"),
    ]
    sales = [
        SalesRecord("REF1483", 100, 100, Decimal("500")),
        SalesRecord("REF1999", 100, 80, Decimal("1000")),
        SalesRecord("REF8888", 5, 5, Decimal("25")),
    ]
    return Linker().run(load, sales)


def test_unique_varieties() -> None:
    assert unique_varieties(_records()) == ["APPLE", "PEAR"]


def test_filter_by_status_case_insensitive() -> None:
    records = filter_records(_records(), status="split")
    assert len(records) == 2
    assert all(r.status == MatchStatus.SPLIT for r in records)


def test_filter_by_variety_and_reconciled() -> None:
    records = _records()
    assert [r.consign_number for r in filter_records(records, variety="APPLE")] == ["Z1C0801483", "Z1C0803333"]
    assert [r.supplier_ref for r in filter_records(records, reconciled=RECONCILED)] == ["REF1483"]
    assert len(filter_records(records, reconciled=NOT_RECONCILED)) == 4


def test_sort_reconciled_first_is_stable() -> None:
    records = _records()
    ordered = sort_reconciled_first(list(reversed(records)))
    assert ordered[0].supplier_ref == "REF1483"
    assert [r.supplier_ref for r in ordered[1:]] == [r.supplier_ref for r in reversed(records) if not r.reconciled]


def test_group_records_summarises_split() -> None:
    groups = group_records(_records())
    assert len(groups) == 4
    split_group = groups[1]
    assert len(split_group.children) == 2
    summary = split_group.record
    assert summary.status == MatchStatus.MATCHED
    assert summary.cartons_sent == 100
    assert summary.received == 100
    assert summary.sold_on_market == 80
    assert summary.total_value == Decimal("1000.00")
    assert summary.is_split_transaction
    assert split_group.reconciled is False
    assert groups[0].children == []
    assert groups[0].reconciled is True


def test_row_category() -> None:
    records = _records()
    assert row_category(records[0]) == "normal"
    assert row_category(records[3]) == "unmatched"


def test_format_number() -> None:
    assert format_number(1234) == "1,234"
    assert format_number(Decimal("2.5")) == "2.50"
    assert format_number(Decimal("1234.5"), "currency") == "R 1,234.50"
    assert format_number(-5, "currency") == "-R 5.00"
    assert format_number(10, "currency", currency_symbol="") == "10.00"
    assert format_number(12.5, "percent") == "12.5%"


def _uneven_split_records():
    """Une consignation fractionnée dont seule la seconde ligne est rapprochée."""
    load = [
        LoadRecord("Z1C0803333", 10, "PLUM"),
        LoadRecord("Z1C0801999", 61, "PEAR"),
        LoadRecord("Z1C0801999", 39, "PEAR"),
        LoadRecord("Z1C0801483", 5, "APPLE"),
    ]
    sales = [
        SalesRecord("REF1999", 97, 97, Decimal("970")),
        SalesRecord("REF1483", 5, 5, Decimal("50")),
    ]
    return Linker().run(load, sales)


def test_cluster_records_by_consign_or_reference() -> None:
    records = _records()
    clusters = cluster_records(records)
    assert [[r.consign_number for r in c] for c in clusters] == [
        ["Z1C0801483"],
        ["Z1C0801999", "Z1C0801999"],
        ["Z1C0803333"],
        [""],
    ]


def test_cluster_records_joins_shared_reference() -> None:
    base = _records()[0]
    records = [
        replace(base, consign_number="Z1C0801111", supplier_ref="REF1111"),
        replace(base, consign_number="Z1C0802222", supplier_ref="REF2222"),
        replace(base, consign_number="Z1C0803333", supplier_ref="REF1111"),
        replace(base, consign_number="", supplier_ref=""),
    ]
    clusters = cluster_records(records)
    assert [[r.consign_number for r in c] for c in clusters] == [
        ["Z1C0801111", "Z1C0803333"],
        ["Z1C0802222"],
        [""],
    ]


def test_sort_reconciled_first_keeps_split_members_adjacent() -> None:
    records = _uneven_split_records()
    split_rows = [r for r in records if r.status == MatchStatus.SPLIT]
    assert [r.reconciled for r in split_rows] == [False, True]

    ordered = sort_reconciled_first(records)
    assert [(r.consign_number, r.received) for r in ordered] == [
        ("Z1C0801999", 59),
        ("Z1C0801999", 38),
        ("Z1C0801483", 5),
        ("Z1C0803333", 0),
    ]


def test_filter_groups_on_summary_row() -> None:
    groups = group_records(_records())
    assert [g.record.supplier_ref for g in filter_groups(groups, reconciled=RECONCILED)] == ["REF1483"]
    assert [g.record.supplier_ref for g in filter_groups(groups, status="matched")] == ["REF1483", "REF1999"]
    assert [g.record.consign_number for g in filter_groups(groups, status="Unmatched")] == ["Z1C0803333", ""]
    split = filter_groups(groups, status="split")
    assert len(split) == 1
    assert len(split[0].children) == 2
    assert filter_groups(groups, variety="PEAR") == split


def test_filter_groups_split_partly_reconciled() -> None:
    """Un groupe n'est rapproché que si toutes ses lignes le sont."""
    groups = group_records(_uneven_split_records())
    kept = filter_groups(groups, reconciled=RECONCILED)
    assert [g.record.consign_number for g in kept] == ["Z1C0801483"]
    not_kept = filter_groups(groups, reconciled=NOT_RECONCILED)
    assert [g.record.consign_number for g in not_kept] == ["Z1C0803333", "Z1C0801999"]


def test_sort_groups_reconciled_first() -> None:
    groups = group_records(_uneven_split_records())
    ordered = sort_groups_reconciled_first(groups)
    assert [g.record.consign_number for g in ordered] == ["Z1C0801483", "Z1C0803333", "Z1C0801999"]
