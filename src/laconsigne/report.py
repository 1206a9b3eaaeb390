"""Statistiques du registre rapproché et onglet REPORT."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Sequence

import pandas as pd

from laconsigne import __version__
from laconsigne.matching.schema import MatchedRecord, MatchStatus


@dataclass(frozen=True)
class Statistics:
    """Synthèse d'un registre rapproché."""

    total_records: int
    matched_count: int
    unmatched_count: int
    split_count: int
    total_value: Decimal
    average_value: Decimal
    match_rate: float  # pourcentage, 0.0 si registre vide


def aggregate(records: Sequence[MatchedRecord]) -> Statistics:
    """
    Réduit le registre en statistiques. Totale, sans cas d'erreur.

    Le taux de rapprochement compte les lignes Matched et Split ; il vaut 0.0
    pour un registre vide.
    """
    total = len(records)
    matched = sum(1 for r in records if r.status == MatchStatus.MATCHED)
    split = sum(1 for r in records if r.status == MatchStatus.SPLIT)
    unmatched = sum(1 for r in records if r.status == MatchStatus.UNMATCHED)
    total_value = sum((r.total_value for r in records), Decimal(0))

    if total == 0:
        return Statistics(0, 0, 0, 0, Decimal(0), Decimal(0), 0.0)

    return Statistics(
        total_records=total,
        matched_count=matched,
        unmatched_count=unmatched,
        split_count=split,
        total_value=total_value,
        average_value=total_value / total,
        match_rate=(matched + split) * 100 / total,
    )


def build_report_df(
    stats: Statistics,
    *,
    excluded_sales: int = 0,
    load_file: str = "",
    sales_file: str = "",
) -> pd.DataFrame:
    """
    Construit le DataFrame pour l'onglet REPORT.

    Contient : compteurs par statut, valeurs, taux, fichiers, horodatage, version.
    """
    rows = [
        ("nb_records", stats.total_records),
        ("nb_matched", stats.matched_count),
        ("nb_split", stats.split_count),
        ("nb_unmatched", stats.unmatched_count),
        ("nb_excluded_sales", excluded_sales),
        ("total_value", float(stats.total_value)),
        ("average_value", round(float(stats.average_value), 2)),
        ("match_rate_pct", round(stats.match_rate, 1)),
        ("", ""),
        ("load_file", load_file),
        ("sales_file", sales_file),
        ("", ""),
        ("timestamp", datetime.now().isoformat()),
        ("version", __version__),
    ]
    return pd.DataFrame(rows, columns=["Key", "Value"])


def print_report_console(stats: Statistics, *, currency_symbol: str = "R") -> None:
    """Affiche un résumé du rapport en console."""
    print("\n=== LaConsigne Report ===")
    print(f"  Lignes:           {stats.total_records}")
    print(f"  Rapprochées:      {stats.matched_count}")
    print(f"  Fractionnées:     {stats.split_count}")
    print(f"  Non rapprochées:  {stats.unmatched_count}")
    print(f"  Valeur totale:    {currency_symbol} {stats.total_value:,.2f}")
    print(f"  Valeur moyenne:   {currency_symbol} {stats.average_value:,.2f}")
    print(f"  Taux:             {stats.match_rate:.1f}%")
    print(f"  Version:          {__version__}")
    print(f"  Timestamp:        {datetime.now().isoformat()}")
    print("=========================\n")
