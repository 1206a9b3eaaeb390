"""Moteur de rapprochement : chargements ↔ ventes, transactions fractionnées."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Sequence

from laconsigne.config import LaConsigneError
from laconsigne.matching.blockers import (
    build_sales_index,
    group_load_records,
    is_valid_reference,
    last_four_digits,
)
from laconsigne.matching.schema import (
    LoadRecord,
    MatchedRecord,
    MatchStatus,
    SalesRecord,
    round_cents,
    round_half_up,
)

logger = logging.getLogger(__name__)

ZERO = Decimal(0)


class MatchInputError(LaConsigneError, TypeError):
    """Entrée mal formée passée au moteur (erreur d'appel, pas de données)."""


class Linker:
    """
    Moteur de rapprochement entre rapport de chargement et rapport de ventes.

    Règles retenues là où les variantes historiques divergeaient :
    - repli sur le premier candidat *non consommé* de la clé (jamais de réutilisation) ;
    - quantités proportionnelles arrondies demi vers le haut.
    """

    def __init__(self, split_tolerance: int = 1, log: logging.Logger | None = None) -> None:
        self.split_tolerance = split_tolerance
        self.log = log or logger

    def run(
        self,
        load_records: Sequence[LoadRecord],
        sales_records: Sequence[SalesRecord],
    ) -> list[MatchedRecord]:
        """
        Exécute le rapprochement.

        Returns:
            Liste de MatchedRecord : les groupes de chargement dans l'ordre de
            première apparition, puis les ventes orphelines dans l'ordre du rapport.

        Raises:
            MatchInputError: Si l'un des arguments n'est pas une liste/tuple.
        """
        if not isinstance(load_records, (list, tuple)):
            raise MatchInputError(f"load_records doit être une liste (got {type(load_records).__name__})")
        if not isinstance(sales_records, (list, tuple)):
            raise MatchInputError(f"sales_records doit être une liste (got {type(sales_records).__name__})")

        sales_index = build_sales_index(sales_records)
        consumed: set[int] = set()
        results: list[MatchedRecord] = []

        for consign, members in group_load_records(load_records):
            total_cartons = sum(m.cartons for m in members)
            key = last_four_digits(consign)
            chosen = self._pick_candidate(sales_index.get(key, []) if key else [], sales_records, consumed, total_cartons)
            is_split = len(members) > 1
            group_id = consign if is_split else None

            if chosen is None:
                self.log.debug("Groupe %r (clé %r): aucune vente", consign, key)
                results.extend(self._unmatched(m, is_split, group_id) for m in members)
                continue

            consumed.add(chosen)
            sale = sales_records[chosen]
            if is_split:
                self.log.debug(
                    "Groupe %r fractionné en %d chargements -> %r", consign, len(members), sale.supplier_ref
                )
                results.extend(self._split(members, total_cartons, sale, group_id))
            else:
                results.append(self._matched(members[0], sale))

        orphans = 0
        for pos, sale in enumerate(sales_records):
            if pos in consumed or not is_valid_reference(sale.supplier_ref):
                continue
            orphans += 1
            results.append(
                MatchedRecord(
                    consign_number="",
                    supplier_ref=sale.supplier_ref,
                    status=MatchStatus.UNMATCHED,
                    variety="",
                    carton_type="",
                    cartons_sent=0,
                    received=sale.received,
                    sold_on_market=sale.sold,
                    total_value=sale.total_value,
                    split_tolerance=self.split_tolerance,
                )
            )

        self.log.info(
            "Rapprochement: %d lignes produites, %d ventes consommées, %d ventes orphelines",
            len(results),
            len(consumed),
            orphans,
        )
        return results

    @staticmethod
    def _pick_candidate(
        positions: list[int],
        sales_records: Sequence[SalesRecord],
        consumed: set[int],
        total_cartons: int,
    ) -> int | None:
        """Quantité exacte d'abord, sinon premier candidat non consommé."""
        available = [p for p in positions if p not in consumed]
        for pos in available:
            if sales_records[pos].received == total_cartons:
                return pos
        return available[0] if available else None

    def _matched(self, load: LoadRecord, sale: SalesRecord) -> MatchedRecord:
        return MatchedRecord(
            consign_number=load.consign,
            supplier_ref=sale.supplier_ref,
            status=MatchStatus.MATCHED,
            variety=load.variety,
            carton_type=load.carton_type,
            cartons_sent=load.cartons,
            received=sale.received,
            sold_on_market=sale.sold,
            total_value=sale.total_value,
            split_tolerance=self.split_tolerance,
        )

    def _split(
        self,
        members: list[LoadRecord],
        total_cartons: int,
        sale: SalesRecord,
        group_id: str | None,
    ) -> list[MatchedRecord]:
        out: list[MatchedRecord] = []
        for member in members:
            if total_cartons > 0:
                share = Decimal(member.cartons) / Decimal(total_cartons)
            else:
                # Groupe sans cartons : parts égales
                share = Decimal(1) / Decimal(len(members))
            proportional_value = sale.total_value * share
            out.append(
                MatchedRecord(
                    consign_number=member.consign,
                    supplier_ref=sale.supplier_ref,
                    status=MatchStatus.SPLIT,
                    variety=member.variety,
                    carton_type=member.carton_type,
                    cartons_sent=member.cartons,
                    received=round_half_up(Decimal(sale.received) * share),
                    sold_on_market=round_half_up(Decimal(sale.sold) * share),
                    total_value=round_cents(proportional_value),
                    proportional_value=proportional_value,
                    is_split_transaction=True,
                    split_group_id=group_id,
                    split_tolerance=self.split_tolerance,
                )
            )
        return out

    def _unmatched(self, load: LoadRecord, is_split: bool, group_id: str | None) -> MatchedRecord:
        return MatchedRecord(
            consign_number=load.consign,
            supplier_ref="",
            status=MatchStatus.UNMATCHED,
            variety=load.variety,
            carton_type=load.carton_type,
            cartons_sent=load.cartons,
            received=0,
            sold_on_market=0,
            total_value=ZERO,
            is_split_transaction=is_split,
            split_group_id=group_id,
            split_tolerance=self.split_tolerance,
        )


def match(
    load_records: Sequence[LoadRecord],
    sales_records: Sequence[SalesRecord],
    *,
    split_tolerance: int = 1,
    log: logging.Logger | None = None,
) -> list[MatchedRecord]:
    """Raccourci fonctionnel pour ``Linker(...).run(...)``."""
    return Linker(split_tolerance=split_tolerance, log=log).run(load_records, sales_records)
