"""Normalisation des cellules et des lignes brutes en enregistrements typés."""

from __future__ import annotations

import logging
import re
import unicodedata
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Union

from laconsigne.matching.blockers import is_valid_reference
from laconsigne.matching.schema import LoadRecord, SalesRecord, round_half_up

# Valeur de cellule telle que livrée par le décodeur : texte, nombre, date ou vide.
CellValue = Union[str, int, float, datetime, None]
RawRow = dict[str, CellValue]

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")

ZERO = Decimal(0)

logger = logging.getLogger(__name__)


def is_empty(value: Any) -> bool:
    """Vrai pour None, NaN et les chaînes blanches."""
    if value is None:
        return True
    if isinstance(value, float) and value != value:
        return True
    return isinstance(value, str) and not value.strip()


def norm_text(
    s: Any,
    *,
    lower: bool = True,
    strip: bool = True,
) -> str:
    """
    Normalise un texte : NFKC, espaces multiples → espace simple, lower, strip.

    Args:
        s: Valeur à normaliser (convertie en str si numérique).
        lower: Mettre en minuscules.
        strip: Supprimer espaces en début/fin.

    Returns:
        Chaîne normalisée.
    """
    if is_empty(s):
        return ""
    text = unicodedata.normalize("NFKC", str(s))
    text = re.sub(r"\s+", " ", text)
    if strip:
        text = text.strip()
    if lower:
        text = text.lower()
    return text


def norm_header(s: Any) -> str:
    """Forme de comparaison d'un en-tête : minuscules, alphanumérique seulement."""
    return _NON_ALNUM.sub("", norm_text(s))


def header_words(s: Any) -> list[str]:
    """Mots alphanumériques d'un en-tête, en minuscules."""
    return [w for w in _NON_ALNUM.split(norm_text(s)) if w]


def safe_str(val: Any) -> str:
    """Convertit une valeur en chaîne pour affichage/stockage."""
    if is_empty(val):
        return ""
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    return str(val).strip()


def parse_number(value: Any) -> Decimal:
    """
    Convertit une cellule en Decimal.

    Les nombres passent tels quels ; pour le texte, tout caractère hors
    ``[0-9.-]`` est retiré avant conversion (symboles monétaires, séparateurs
    de milliers, espaces). Vide ou illisible → 0.
    """
    if isinstance(value, bool) or is_empty(value):
        return ZERO
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        if value in (float("inf"), float("-inf")):
            return ZERO
        return Decimal(str(value))
    if isinstance(value, datetime):
        return ZERO
    cleaned = _NON_NUMERIC.sub("", str(value))
    if not cleaned:
        return ZERO
    try:
        number = Decimal(cleaned)
    except InvalidOperation:
        return ZERO
    return number if number.is_finite() else ZERO


def parse_quantity(value: Any) -> int:
    """Quantité entière >= 0."""
    return max(round_half_up(parse_number(value)), 0)


def parse_amount(value: Any) -> Decimal:
    """Montant >= 0."""
    return max(parse_number(value), ZERO)


def _cell(row: RawRow, mapping: dict[str, str], field: str) -> CellValue:
    column = mapping.get(field)
    if column is None:
        return None
    return row.get(column)


def normalize_load_rows(
    rows: Iterable[RawRow],
    mapping: dict[str, str],
    *,
    log: logging.Logger | None = None,
) -> list[LoadRecord]:
    """
    Applique le mapping de colonnes aux lignes d'un rapport de chargement.

    Les lignes entièrement vides ou nulles (sous-totaux, lignes de mise en
    forme) sont écartées. Ne lève jamais d'exception.
    """
    log = log or logger
    records: list[LoadRecord] = []
    dropped = 0
    for row in rows:
        record = LoadRecord(
            consign=safe_str(_cell(row, mapping, "consign")),
            cartons=parse_quantity(_cell(row, mapping, "cartons_sent")),
            variety=safe_str(_cell(row, mapping, "variety")),
            carton_type=safe_str(_cell(row, mapping, "carton_type")),
        )
        if record.is_blank():
            dropped += 1
            continue
        records.append(record)
    log.debug("Chargement: %d enregistrements, %d lignes vides écartées", len(records), dropped)
    return records


def normalize_sales_rows(
    rows: Iterable[RawRow],
    mapping: dict[str, str],
    *,
    log: logging.Logger | None = None,
) -> list[SalesRecord]:
    """Applique le mapping de colonnes aux lignes d'un rapport de ventes."""
    log = log or logger
    records: list[SalesRecord] = []
    dropped = 0
    for row in rows:
        record = SalesRecord(
            supplier_ref=safe_str(_cell(row, mapping, "supplier_ref")),
            received=parse_quantity(_cell(row, mapping, "received")),
            sold=parse_quantity(_cell(row, mapping, "sold")),
            total_value=parse_amount(_cell(row, mapping, "total_value")),
        )
        if record.is_blank():
            dropped += 1
            continue
        records.append(record)
    log.debug("Ventes: %d enregistrements, %d lignes vides écartées", len(records), dropped)
    return records


def filter_valid_sales(records: Iterable[SalesRecord]) -> tuple[list[SalesRecord], int]:
    """Sépare les ventes à référence valide ; retourne (valides, nb exclues)."""
    valid: list[SalesRecord] = []
    excluded = 0
    for record in records:
        if is_valid_reference(record.supplier_ref):
            valid.append(record)
        else:
            excluded += 1
    return valid, excluded
