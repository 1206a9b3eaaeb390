"""Schémas et types pour le rapprochement."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

CENT = Decimal("0.01")


def round_half_up(value: Decimal) -> int:
    """Arrondi à l'entier, demi vers le haut (0.5 → 1, 2.5 → 3)."""
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def round_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class MatchStatus(str, Enum):
    MATCHED = "Matched"
    UNMATCHED = "Unmatched"
    SPLIT = "Split"


@dataclass(frozen=True)
class LoadRecord:
    """Ligne normalisée du rapport de chargement."""

    consign: str
    cartons: int
    variety: str = ""
    carton_type: str = ""

    def is_blank(self) -> bool:
        return not (self.consign or self.cartons or self.variety or self.carton_type)


@dataclass(frozen=True)
class SalesRecord:
    """Ligne normalisée du rapport de ventes."""

    supplier_ref: str
    received: int
    sold: int = 0
    total_value: Decimal = Decimal(0)

    def is_blank(self) -> bool:
        return not (self.supplier_ref or self.received or self.sold or self.total_value)


@dataclass(frozen=True)
class MatchedRecord:
    """
    Ligne du registre rapproché.

    Les écarts et le drapeau ``reconciled`` sont dérivés des trois quantités
    à chaque lecture, jamais stockés.
    """

    consign_number: str
    supplier_ref: str
    status: MatchStatus
    variety: str
    carton_type: str
    cartons_sent: int
    received: int
    sold_on_market: int
    total_value: Decimal
    proportional_value: Decimal | None = None  # Split uniquement
    is_split_transaction: bool = False
    split_group_id: str | None = None
    split_tolerance: int = 1

    @property
    def deviation_sent_received(self) -> int:
        return self.cartons_sent - self.received

    @property
    def deviation_received_sold(self) -> int:
        return self.received - self.sold_on_market

    @property
    def reconciled(self) -> bool:
        if self.status == MatchStatus.UNMATCHED:
            return False
        if self.status == MatchStatus.SPLIT:
            # Tolérance pour absorber l'arrondi de la répartition proportionnelle
            return (
                abs(self.deviation_sent_received) <= self.split_tolerance
                and abs(self.deviation_received_sold) <= self.split_tolerance
            )
        return self.cartons_sent == self.received == self.sold_on_market

    def __repr__(self) -> str:
        return (
            f"MatchedRecord(consign={self.consign_number!r}, ref={self.supplier_ref!r}, "
            f"status={self.status.value}, sent={self.cartons_sent}, received={self.received}, "
            f"sold={self.sold_on_market})"
        )
