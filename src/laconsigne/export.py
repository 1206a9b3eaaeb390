"""Export du registre rapproché vers un tableur, et relecture d'un export."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import pandas as pd

from laconsigne.io_excel import DecodeError, save_spreadsheet
from laconsigne.matching.schema import MatchedRecord, MatchStatus
from laconsigne.normalize import parse_amount, parse_quantity, safe_str
from laconsigne.report import Statistics, build_report_df

# Ordre figé : consommé tel quel par les outils en aval.
EXPORT_COLUMNS = [
    "Consign Number",
    "Supplier Ref",
    "Status",
    "Variety",
    "Carton Type",
    "# Ctns Sent",
    "Received",
    "Deviation Sent/Received",
    "Sold on market",
    "Deviation Received/Sold",
    "Total Value",
    "Reconciled",
]

RESULTS_SHEET = "Matching Report"
REPORT_SHEET = "REPORT"


def currency_format(symbol: str) -> str:
    """Format de nombre Excel pour les montants."""
    return f'"{symbol}" #,##0.00' if symbol else "#,##0.00"


def build_export_df(records: Sequence[MatchedRecord]) -> pd.DataFrame:
    """Construit le tableau d'export, une ligne par MatchedRecord, colonnes fixes."""
    rows = [
        [
            r.consign_number,
            r.supplier_ref,
            r.status.value,
            r.variety,
            r.carton_type,
            r.cartons_sent,
            r.received,
            r.deviation_sent_received,
            r.sold_on_market,
            r.deviation_received_sold,
            float(r.total_value),
            "Yes" if r.reconciled else "No",
        ]
        for r in records
    ]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def export_records(
    filepath: str | Path,
    records: Sequence[MatchedRecord],
    stats: Statistics,
    *,
    currency_symbol: str = "R",
    excluded_sales: int = 0,
    load_file: str = "",
    sales_file: str = "",
) -> Path:
    """
    Écrit le registre (feuille "Matching Report") et ses statistiques (feuille "REPORT").

    En xlsx, la colonne Total Value reçoit un format monétaire ; en ods les
    valeurs sont écrites brutes.

    Returns:
        Chemin du fichier écrit.
    """
    path = Path(filepath)
    df = build_export_df(records)
    report_df = build_report_df(
        stats, excluded_sales=excluded_sales, load_file=load_file, sales_file=sales_file
    )

    if path.suffix.lower() != ".xlsx":
        save_spreadsheet(path, {RESULTS_SHEET: df, REPORT_SHEET: report_df})
        return path

    value_col = EXPORT_COLUMNS.index("Total Value") + 1
    number_format = currency_format(currency_symbol)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=RESULTS_SHEET, index=False)
        report_df.to_excel(writer, sheet_name=REPORT_SHEET, index=False)
        ws = writer.sheets[RESULTS_SHEET]
        for row in ws.iter_rows(min_row=2, min_col=value_col, max_col=value_col):
            for cell in row:
                cell.number_format = number_format
    return path


def records_from_export_df(df: pd.DataFrame) -> list[MatchedRecord]:
    """
    Relit un tableau d'export en MatchedRecord.

    Les écarts et "Reconciled" sont recalculés à partir des quantités. Pour les
    lignes Split, la valeur proportionnelle exacte est perdue : seule la valeur
    arrondie au centime est exportée.

    Raises:
        DecodeError: Si des colonnes d'export manquent ou si un statut est inconnu.
    """
    missing = [c for c in EXPORT_COLUMNS if c not in df.columns]
    if missing:
        raise DecodeError(f"Colonnes d'export absentes: {', '.join(missing)}")

    records: list[MatchedRecord] = []
    for pos, (_, row) in enumerate(df.iterrows()):
        try:
            status = MatchStatus(safe_str(row["Status"]))
        except ValueError as e:
            raise DecodeError(f"Statut invalide ligne {pos + 2}: {row['Status']!r}") from e
        consign = safe_str(row["Consign Number"])
        value = parse_amount(row["Total Value"])
        is_split = status == MatchStatus.SPLIT
        records.append(
            MatchedRecord(
                consign_number=consign,
                supplier_ref=safe_str(row["Supplier Ref"]),
                status=status,
                variety=safe_str(row["Variety"]),
                carton_type=safe_str(row["Carton Type"]),
                cartons_sent=parse_quantity(row["# Ctns Sent"]),
                received=parse_quantity(row["Received"]),
                sold_on_market=parse_quantity(row["Sold on market"]),
                total_value=value,
                proportional_value=value if is_split else None,
                is_split_transaction=is_split,
                split_group_id=consign if is_split else None,
            )
        )
    return records


def read_export(filepath: str | Path) -> list[MatchedRecord]:
    """Charge un fichier exporté (feuille "Matching Report")."""
    path = Path(filepath)
    if not path.exists():
        raise DecodeError(f"Fichier introuvable: {path}")
    try:
        df = pd.read_excel(path, sheet_name=RESULTS_SHEET, dtype=object)
    except Exception as e:
        raise DecodeError(f"Impossible de lire l'export {path}: {e}") from e
    return records_from_export_df(df)
