"""Tests des clés de rapprochement et des index."""

from laconsigne.matching.blockers import (
    build_sales_index,
    digits_only,
    group_load_records,
    is_valid_reference,
    last_four_digits,
)
from laconsigne.matching.schema import LoadRecord, SalesRecord


def test_last_four_digits() -> None:
    assert last_four_digits("Z1C0801483") == "1483"
    assert last_four_digits("REF-14-83") == "1483"
    assert last_four_digits("AB12") == "12"
    assert last_four_digits("ABC") == ""
    assert last_four_digits(None) == ""


def test_digits_only() -> None:
    assert digits_only("A1B2C3") == "123"
    assert digits_only(1483.0) == "14830"


def test_is_valid_reference() -> None:
    assert is_valid_reference("REF1483")
    assert not is_valid_reference("DESTINATION: CAPE TOWN 1")
    assert not is_valid_reference("REF1483 (Pre)")
    assert not is_valid_reference("NOREF")
    assert not is_valid_reference("")
    assert not is_valid_reference(None)


def test_group_load_records_keeps_first_occurrence_order() -> None:
    records = [
        LoadRecord("Z1C0801999", 60),
        LoadRecord("Z1C0801483", 100),
        LoadRecord("Z1C0801999", 40),
    ]
    groups = group_load_records(records)
    assert [consign for consign, _ in groups] == ["Z1C0801999", "Z1C0801483"]
    assert [m.cartons for m in groups[0][1]] == [60, 40]


def test_group_load_records_empty_consign_not_grouped() -> None:
    """Les lignes sans numéro ne forment jamais de groupe fractionné."""
    groups = group_load_records([LoadRecord("", 5), LoadRecord("", 7)])
    assert len(groups) == 2
    assert all(len(members) == 1 for _, members in groups)


def test_build_sales_index() -> None:
    records = [
        SalesRecord("REF1483", 10),
        SalesRecord("XYZ1483", 20),
        SalesRecord("REF9999 (Pre)", 5),
        SalesRecord("NOREF", 1),
    ]
    index = build_sales_index(records)
    assert index == {"1483": [0, 1]}


def test_keys_use_ascii_digits_only() -> None:
    """Chiffres pleine chasse ou exposants ne comptent pas comme chiffres de clé."""
    assert last_four_digits("REF１４８３") == ""
    assert last_four_digits("REF1483²") == "1483"
    assert digits_only("Z1C０801483") == "1801483"
    assert not is_valid_reference("REF１４８３")
