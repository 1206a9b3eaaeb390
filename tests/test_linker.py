"""Tests du moteur de rapprochement."""

from decimal import Decimal

import pytest

from laconsigne.matching import (
    Linker,
    LoadRecord,
    MatchedRecord,
    MatchInputError,
    MatchStatus,
    SalesRecord,
    match,
)


def test_exact_single_match() -> None:
    """Une consignation, une vente : Matched, écart de vente non rapproché."""
    load = [LoadRecord("Z1C0801483", 100, "APPLE")]
    sales = [SalesRecord("REF1483", 100, 95, Decimal("500.00"))]
    results = Linker().run(load, sales)
    assert len(results) == 1
    r = results[0]
    assert r.status == MatchStatus.MATCHED
    assert r.consign_number == "Z1C0801483"
    assert r.supplier_ref == "REF1483"
    assert r.variety == "APPLE"
    assert r.total_value == Decimal("500.00")
    assert r.deviation_sent_received == 0
    assert r.deviation_received_sold == 5
    assert r.reconciled is False


def test_full_reconciliation() -> None:
    load = [LoadRecord("Z1C0801483", 100, "APPLE")]
    sales = [SalesRecord("REF1483", 100, 100, Decimal("500.00"))]
    r = Linker().run(load, sales)[0]
    assert r.reconciled is True
    assert r.deviation_sent_received == 0
    assert r.deviation_received_sold == 0


def test_split_transaction_proportional() -> None:
    """Deux chargements d'une même consignation se partagent une vente."""
    load = [
        LoadRecord("Z1C0801999", 60, "PEAR"),
        LoadRecord("Z1C0801999", 40, "PEAR"),
    ]
    sales = [SalesRecord("REF1999", 100, 80, Decimal("1000"))]
    results = Linker().run(load, sales)
    assert [r.status for r in results] == [MatchStatus.SPLIT, MatchStatus.SPLIT]
    assert [r.proportional_value for r in results] == [Decimal(600), Decimal(400)]
    assert [r.total_value for r in results] == [Decimal("600.00"), Decimal("400.00")]
    assert [r.received for r in results] == [60, 40]
    assert [r.sold_on_market for r in results] == [48, 32]
    assert all(r.is_split_transaction for r in results)
    assert all(r.split_group_id == "Z1C0801999" for r in results)


def test_split_rounds_half_up() -> None:
    load = [LoadRecord("Z1C0805555", 1), LoadRecord("Z1C0805555", 1)]
    sales = [SalesRecord("REF5555", 5, 3, Decimal("10.01"))]
    results = Linker().run(load, sales)
    assert [r.received for r in results] == [3, 3]
    assert [r.sold_on_market for r in results] == [2, 2]
    assert [r.total_value for r in results] == [Decimal("5.01"), Decimal("5.01")]
    assert [r.proportional_value for r in results] == [Decimal("5.005"), Decimal("5.005")]


def test_split_without_cartons_uses_equal_shares() -> None:
    load = [LoadRecord("Z1C0806666", 0), LoadRecord("Z1C0806666", 0)]
    sales = [SalesRecord("REF6666", 10, 10, Decimal("100"))]
    results = Linker().run(load, sales)
    assert [r.received for r in results] == [5, 5]
    assert [r.total_value for r in results] == [Decimal("50.00"), Decimal("50.00")]


def test_invalid_sales_reference_never_appears() -> None:
    """Une référence "(Pre)" est exclue, même comme vente orpheline."""
    sales = [
        SalesRecord("REF2222 (Pre)", 10, 10, Decimal("50")),
        SalesRecord("DESTINATION: DURBAN 7", 0),
    ]
    results = Linker().run([], sales)
    assert results == []


def test_orphan_sales_become_unmatched() -> None:
    load = [LoadRecord("Z1C0801483", 100)]
    sales = [
        SalesRecord("REF1483", 100, 100, Decimal("500")),
        SalesRecord("REF7777", 20, 15, Decimal("80")),
    ]
    results = Linker().run(load, sales)
    assert len(results) == 2
    orphan = results[1]
    assert orphan.status == MatchStatus.UNMATCHED
    assert orphan.consign_number == ""
    assert orphan.supplier_ref == "REF7777"
    assert orphan.cartons_sent == 0
    assert orphan.received == 20
    assert orphan.total_value == Decimal("80")
    assert orphan.reconciled is False


def test_unmatched_load_has_zero_sales_side() -> None:
    results = Linker().run([LoadRecord("Z1C0804321", 12, "PLUM", "A15")], [])
    assert len(results) == 1
    r = results[0]
    assert r.status == MatchStatus.UNMATCHED
    assert r.supplier_ref == ""
    assert (r.received, r.sold_on_market, r.total_value) == (0, 0, 0)
    assert r.deviation_sent_received == 12


def test_unmatched_split_group_keeps_tagging() -> None:
    load = [LoadRecord("Z1C0801999", 60), LoadRecord("Z1C0801999", 40)]
    results = Linker().run(load, [])
    assert all(r.status == MatchStatus.UNMATCHED for r in results)
    assert all(r.is_split_transaction for r in results)
    assert all(r.split_group_id == "Z1C0801999" for r in results)


def test_exact_quantity_preferred() -> None:
    """Parmi les ventes d'une même clé, la quantité exacte l'emporte."""
    load = [LoadRecord("A1B0001234", 50)]
    sales = [SalesRecord("X1234", 30), SalesRecord("Y1234", 50)]
    results = Linker().run(load, sales)
    assert results[0].supplier_ref == "Y1234"
    assert results[0].status == MatchStatus.MATCHED
    assert results[1].supplier_ref == "X1234"
    assert results[1].status == MatchStatus.UNMATCHED


def test_fallback_first_unconsumed_only() -> None:
    """Sans quantité exacte : premier candidat non consommé, jamais réutilisé."""
    load = [LoadRecord("Z1C0001234", 10), LoadRecord("Z9C0001234", 20)]
    sales = [SalesRecord("REF1234", 99)]
    results = Linker().run(load, sales)
    assert results[0].status == MatchStatus.MATCHED
    assert results[0].supplier_ref == "REF1234"
    assert results[1].status == MatchStatus.UNMATCHED
    assert len(results) == 2


def test_empty_consign_never_matches() -> None:
    load = [LoadRecord("", 5, "APPLE"), LoadRecord("", 7, "PEAR")]
    results = Linker().run(load, [SalesRecord("REF1000", 5)])
    assert [r.status for r in results[:2]] == [MatchStatus.UNMATCHED, MatchStatus.UNMATCHED]
    assert not any(r.is_split_transaction for r in results)


def test_each_record_has_one_origin() -> None:
    load = [
        LoadRecord("Z1C0801483", 100),
        LoadRecord("Z1C0801999", 60),
        LoadRecord("Z1C0801999", 40),
        LoadRecord("Z1C0803333", 10),
    ]
    sales = [
        SalesRecord("REF1483", 100, 100, Decimal("500")),
        SalesRecord("REF1999", 100, 80, Decimal("1000")),
        SalesRecord("REF8888", 5, 5, Decimal("25")),
    ]
    results = Linker().run(load, sales)
    from_load = [r for r in results if r.consign_number]
    from_sales_only = [r for r in results if not r.consign_number]
    assert len(from_load) == len(load)
    assert [r.supplier_ref for r in from_sales_only] == ["REF8888"]


def test_deviation_identities() -> None:
    load = [LoadRecord("Z1C0801483", 100), LoadRecord("Z1C0801999", 60), LoadRecord("Z1C0801999", 40)]
    sales = [SalesRecord("REF1483", 90, 70), SalesRecord("REF1999", 100, 80), SalesRecord("REF5000", 3, 1)]
    for r in Linker().run(load, sales):
        assert r.deviation_sent_received == r.cartons_sent - r.received
        assert r.deviation_received_sold == r.received - r.sold_on_market


def test_run_is_idempotent() -> None:
    load = [LoadRecord("Z1C0801999", 60), LoadRecord("Z1C0801999", 40), LoadRecord("Z1C0801483", 100)]
    sales = [SalesRecord("REF1999", 100, 80, Decimal("1000")), SalesRecord("REF7777", 1)]
    linker = Linker()
    assert linker.run(load, sales) == linker.run(load, sales)


def test_split_reconciled_within_tolerance() -> None:
    def split(sent: int, received: int, sold: int, tolerance: int = 1) -> MatchedRecord:
        return MatchedRecord(
            consign_number="Z1C0801999",
            supplier_ref="REF1999",
            status=MatchStatus.SPLIT,
            variety="",
            carton_type="",
            cartons_sent=sent,
            received=received,
            sold_on_market=sold,
            total_value=Decimal(0),
            is_split_transaction=True,
            split_tolerance=tolerance,
        )

    assert split(33, 34, 33).reconciled is True
    assert split(33, 35, 35).reconciled is False
    assert split(33, 34, 33, tolerance=0).reconciled is False


def test_match_input_error() -> None:
    with pytest.raises(MatchInputError):
        Linker().run("not a list", [])  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        match([], None)  # type: ignore[arg-type]


def test_match_function_passes_tolerance() -> None:
    results = match([LoadRecord("Z1C0801999", 1)], [SalesRecord("REF1999", 1, 1)], split_tolerance=3)
    assert results[0].split_tolerance == 3
