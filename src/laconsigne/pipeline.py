"""Pipeline complet : décodage, inférence, normalisation, rapprochement, statistiques."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from laconsigne.config import Config
from laconsigne.detection.inferencer import ColumnMapping, FileKind, infer_schema
from laconsigne.io_excel import load_rows
from laconsigne.matching.linker import Linker
from laconsigne.matching.schema import MatchedRecord
from laconsigne.normalize import filter_valid_sales, normalize_load_rows, normalize_sales_rows
from laconsigne.report import Statistics, aggregate

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """Résultat d'une analyse. Recréé à chaque exécution, jamais complété."""

    records: list[MatchedRecord]
    statistics: Statistics
    load_mapping: ColumnMapping = field(default_factory=ColumnMapping)
    sales_mapping: ColumnMapping = field(default_factory=ColumnMapping)
    excluded_sales: int = 0
    load_file: str = ""
    sales_file: str = ""


def analyze(
    load_file: str | Path,
    sales_file: str | Path,
    config: Config | None = None,
    *,
    log: logging.Logger | None = None,
) -> AnalysisResult:
    """
    Exécute l'analyse complète de deux fichiers.

    Toute erreur (DecodeError, SchemaInferenceError, MatchInputError) interrompt
    l'analyse entière ; aucun résultat partiel n'est retourné.
    """
    config = config or Config()
    log = log or logger
    load_path = Path(load_file)
    sales_path = Path(sales_file)

    load_raw = load_rows(load_path, config.load_sheet, role="load", header_row=config.header_row)
    sales_raw = load_rows(sales_path, config.sales_sheet, role="sales", header_row=config.header_row)
    log.info("Lignes lues: chargement=%d, ventes=%d", len(load_raw), len(sales_raw))

    load_mapping = infer_schema(load_raw, FileKind.LOAD, config=config, log=log, source=load_path.name)
    sales_mapping = infer_schema(sales_raw, FileKind.SALES, config=config, log=log, source=sales_path.name)

    loads = normalize_load_rows(load_raw, load_mapping.as_dict(), log=log)
    sales = normalize_sales_rows(sales_raw, sales_mapping.as_dict(), log=log)
    valid_sales, excluded = filter_valid_sales(sales)
    if excluded:
        log.info("%d ligne(s) de ventes écartée(s): référence invalide", excluded)

    records = Linker(split_tolerance=config.split_tolerance, log=log).run(loads, valid_sales)
    stats = aggregate(records)
    return AnalysisResult(
        records=records,
        statistics=stats,
        load_mapping=load_mapping,
        sales_mapping=sales_mapping,
        excluded_sales=excluded,
        load_file=str(load_path),
        sales_file=str(sales_path),
    )
