"""Filtres, regroupements et formats d'affichage du registre rapproché."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Sequence

from laconsigne.matching.schema import MatchedRecord, MatchStatus

ALL = "all"
RECONCILED = "reconciled"
NOT_RECONCILED = "not-reconciled"


@dataclass
class RecordGroup:
    """Ligne de synthèse et lignes détail (vide si la synthèse est une ligne unique)."""

    record: MatchedRecord
    children: list[MatchedRecord] = field(default_factory=list)

    @property
    def reconciled(self) -> bool:
        """Synthèse rapprochée seulement si chaque ligne détail l'est."""
        if self.children:
            return all(c.reconciled for c in self.children)
        return self.record.reconciled


def unique_varieties(records: Sequence[MatchedRecord]) -> list[str]:
    """Variétés distinctes non vides, dans l'ordre d'apparition."""
    return [v for v in dict.fromkeys(r.variety for r in records) if v]


def _keep(record: MatchedRecord, status: str, variety: str, reconciled: str, is_reconciled: bool) -> bool:
    if status != ALL and record.status.value.lower() != status.lower():
        return False
    if variety != ALL and record.variety != variety:
        return False
    if reconciled == RECONCILED:
        return is_reconciled
    if reconciled == NOT_RECONCILED:
        return not is_reconciled
    return True


def filter_records(
    records: Sequence[MatchedRecord],
    *,
    status: str = ALL,
    variety: str = ALL,
    reconciled: str = ALL,
) -> list[MatchedRecord]:
    """
    Filtre le registre.

    Args:
        status: "all" ou un statut (Matched, Unmatched, Split ; casse indifférente).
        variety: "all" ou une variété exacte.
        reconciled: "all", "reconciled" ou "not-reconciled".
    """
    return [r for r in records if _keep(r, status, variety, reconciled, r.reconciled)]


def cluster_records(records: Sequence[MatchedRecord]) -> list[list[MatchedRecord]]:
    """
    Rassemble les lignes qui partagent un numéro de consignation ou une référence.

    Chaque grappe part de la première ligne non encore rangée et reprend, dans
    l'ordre du registre, les lignes de même consign ou de même référence. Les
    lignes sans consign ni référence forment une dernière grappe.
    """
    placed: set[int] = set()
    clusters: list[list[MatchedRecord]] = []
    for i, record in enumerate(records):
        if i in placed or not (record.consign_number or record.supplier_ref):
            continue
        cluster: list[MatchedRecord] = []
        for j, other in enumerate(records):
            if j in placed:
                continue
            same_consign = bool(record.consign_number) and other.consign_number == record.consign_number
            same_ref = bool(record.supplier_ref) and other.supplier_ref == record.supplier_ref
            if same_consign or same_ref:
                cluster.append(other)
                placed.add(j)
        clusters.append(cluster)
    rest = [r for i, r in enumerate(records) if i not in placed]
    if rest:
        clusters.append(rest)
    return clusters


def sort_reconciled_first(records: Sequence[MatchedRecord]) -> list[MatchedRecord]:
    """
    Tri stable par grappes (voir ``cluster_records``) : les grappes contenant
    une ligne rapprochée passent en tête, les lignes d'une grappe restent contiguës.
    """
    clusters = sorted(cluster_records(records), key=lambda c: not any(r.reconciled for r in c))
    return [r for cluster in clusters for r in cluster]


def _summary(children: list[MatchedRecord]) -> MatchedRecord:
    first = children[0]
    all_linked = all(c.status != MatchStatus.UNMATCHED for c in children)
    total_value = sum((c.total_value for c in children), Decimal(0))
    summary = replace(
        first,
        status=MatchStatus.MATCHED if all_linked else MatchStatus.UNMATCHED,
        cartons_sent=sum(c.cartons_sent for c in children),
        received=sum(c.received for c in children),
        sold_on_market=sum(c.sold_on_market for c in children),
        total_value=total_value,
        proportional_value=None,
        is_split_transaction=any(c.is_split_transaction for c in children),
    )
    return summary


def group_records(records: Sequence[MatchedRecord]) -> list[RecordGroup]:
    """
    Regroupe les lignes par (consign, supplier ref).

    Un groupe de plusieurs lignes produit une ligne de synthèse (quantités et
    valeurs sommées, écarts recalculés). Les lignes sans consign ni référence
    sont écartées.
    """
    groups: dict[tuple[str, str], list[MatchedRecord]] = {}
    for record in records:
        if not record.consign_number and not record.supplier_ref:
            continue
        key = (record.consign_number, record.supplier_ref)
        groups.setdefault(key, []).append(record)

    out: list[RecordGroup] = []
    for children in groups.values():
        if len(children) == 1:
            out.append(RecordGroup(children[0]))
        else:
            out.append(RecordGroup(_summary(children), children))
    return out


def row_category(record: MatchedRecord) -> str:
    """Catégorie d'affichage : orphan (ni consign ni référence), unmatched, normal."""
    if not record.consign_number and not record.supplier_ref:
        return "orphan"
    if record.status == MatchStatus.UNMATCHED:
        return "unmatched"
    return "normal"


def format_number(value: int | float | Decimal, kind: str = "number", *, currency_symbol: str = "R") -> str:
    """
    Formate un nombre pour l'affichage.

    kind: "number" (séparateur de milliers), "currency" (symbole, 2 décimales),
    "percent" (1 décimale, valeur déjà en pourcentage).
    """
    if kind == "currency":
        sign = "-" if value < 0 else ""
        prefix = f"{currency_symbol} " if currency_symbol else ""
        return f"{sign}{prefix}{abs(Decimal(str(value))):,.2f}"
    if kind == "percent":
        return f"{float(value):.1f}%"
    if isinstance(value, Decimal):
        value = float(value)
    if isinstance(value, float) and not value.is_integer():
        return f"{value:,.2f}"
    return f"{int(value):,}"


def filter_groups(
    groups: Sequence[RecordGroup],
    *,
    status: str = ALL,
    variety: str = ALL,
    reconciled: str = ALL,
) -> list[RecordGroup]:
    """
    Filtre les groupes sur leur ligne de synthèse.

    Le filtre "split" retient les groupes issus d'une transaction fractionnée,
    la synthèse d'un tel groupe n'ayant pas le statut Split.
    """
    out: list[RecordGroup] = []
    for group in groups:
        record = group.record
        if status.lower() == MatchStatus.SPLIT.value.lower():
            if not record.is_split_transaction:
                continue
            keep = _keep(record, ALL, variety, reconciled, group.reconciled)
        else:
            keep = _keep(record, status, variety, reconciled, group.reconciled)
        if keep:
            out.append(group)
    return out


def sort_groups_reconciled_first(groups: Sequence[RecordGroup]) -> list[RecordGroup]:
    """Tri stable : groupes rapprochés d'abord."""
    return sorted(groups, key=lambda g: not g.reconciled)
