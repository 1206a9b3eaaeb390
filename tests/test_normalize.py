"""Tests de la normalisation des cellules et des lignes."""

from decimal import Decimal

from laconsigne.matching.schema import LoadRecord, SalesRecord
from laconsigne.normalize import (
    filter_valid_sales,
    is_empty,
    norm_header,
    normalize_load_rows,
    normalize_sales_rows,
    parse_amount,
    parse_number,
    parse_quantity,
    safe_str,
)


def test_is_empty() -> None:
    assert is_empty(None)
    assert is_empty(float("nan"))
    assert is_empty("   ")
    assert not is_empty(0)
    assert not is_empty("x")


def test_norm_header() -> None:
    assert norm_header("  # Ctns  Sent ") == "ctnssent"
    assert norm_header("Supplier-Ref") == "supplierref"
    assert norm_header(None) == ""


def test_safe_str() -> None:
    assert safe_str(12.0) == "12"
    assert safe_str(12.5) == "12.5"
    assert safe_str(None) == ""
    assert safe_str("  REF1 ") == "REF1"


def test_parse_number_strips_non_numeric() -> None:
    """Symboles monétaires, séparateurs de milliers et espaces sont retirés."""
    assert parse_number("R 1,234.50") == Decimal("1234.50")
    assert parse_number("$ 99") == Decimal("99")
    assert parse_number(42) == Decimal(42)
    assert parse_number(2.5) == Decimal("2.5")


def test_parse_number_defaults_to_zero() -> None:
    assert parse_number("") == 0
    assert parse_number(None) == 0
    assert parse_number("abc") == 0
    assert parse_number("1-2") == 0
    assert parse_number(float("inf")) == 0


def test_parse_quantity_rounds_half_up_and_clamps() -> None:
    assert parse_quantity("12.5") == 13
    assert parse_quantity(2.4) == 2
    assert parse_quantity(-3) == 0
    assert parse_quantity("n/a") == 0


def test_parse_amount_clamps_negative() -> None:
    assert parse_amount("-10.00") == 0
    assert parse_amount("R500.00") == Decimal("500.00")


def test_normalize_load_rows_applies_mapping() -> None:
    mapping = {"consign": "Consign", "cartons_sent": "# Ctns", "variety": "Variety"}
    rows = [
        {"Consign": "Z1C0801483", "# Ctns": 100, "Variety": "APPLE"},
        {},
        {"Other": "ignored"},
    ]
    records = normalize_load_rows(rows, mapping)
    assert records == [LoadRecord("Z1C0801483", 100, "APPLE", "")]


def test_normalize_sales_rows_missing_columns_default() -> None:
    """Colonne absente du mapping : valeur par défaut, pas d'erreur."""
    mapping = {"supplier_ref": "Ref", "received": "Received"}
    rows = [{"Ref": "REF1483", "Received": "100", "Sold": 95}]
    records = normalize_sales_rows(rows, mapping)
    assert records == [SalesRecord("REF1483", 100, 0, Decimal(0))]


def test_filter_valid_sales_counts_exclusions() -> None:
    records = [
        SalesRecord("REF1483", 10),
        SalesRecord("DESTINATION: DURBAN", 0),
        SalesRecord("REF2222 (Pre)", 5),
        SalesRecord("NOREF", 3),
    ]
    valid, excluded = filter_valid_sales(records)
    assert [r.supplier_ref for r in valid] == ["REF1483"]
    assert excluded == 3
