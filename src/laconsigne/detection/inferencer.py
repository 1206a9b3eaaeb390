"""Inférence du schéma d'un rapport : type de fichier et colonnes sémantiques."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from laconsigne.config import Config, LaConsigneError
from laconsigne.detection.scorers import (
    FIELD_SHAPES,
    best_header,
    header_role_scores,
    shape_score,
)
from laconsigne.normalize import RawRow

logger = logging.getLogger(__name__)

SHAPE_ROLE_THRESHOLD = 0.5


class FileKind(str, Enum):
    LOAD = "load"
    SALES = "sales"
    UNKNOWN = "unknown"


ROLE_FIELDS: dict[FileKind, tuple[str, ...]] = {
    FileKind.LOAD: ("consign", "variety", "carton_type", "cartons_sent"),
    FileKind.SALES: ("supplier_ref", "received", "sold", "total_value"),
}

CRITICAL_FIELDS: dict[FileKind, tuple[str, ...]] = {
    FileKind.LOAD: ("consign", "cartons_sent"),
    FileKind.SALES: ("supplier_ref", "received"),
}


class SchemaInferenceError(LaConsigneError):
    """Fichier lisible mais schéma non reconnu (type inconnu ou champ critique absent)."""

    def __init__(
        self,
        message: str,
        *,
        file_kind: FileKind = FileKind.UNKNOWN,
        missing_fields: Sequence[str] = (),
    ) -> None:
        super().__init__(message)
        self.file_kind = file_kind
        self.missing_fields = list(missing_fields)


@dataclass
class ColumnMapping:
    """Champ sémantique -> nom de colonne réel, avec le score et l'origine du choix."""

    columns: dict[str, str] = field(default_factory=dict)
    scores: dict[str, float] = field(default_factory=dict)
    sources: dict[str, str] = field(default_factory=dict)  # header, content

    def get(self, name: str) -> str | None:
        return self.columns.get(name)

    def missing(self, names: Sequence[str]) -> list[str]:
        return [n for n in names if n not in self.columns]

    def as_dict(self) -> dict[str, str]:
        return dict(self.columns)


def sample_rows(rows: Sequence[RawRow], size: int) -> list[RawRow]:
    return list(rows[:size])


def ordered_headers(rows: Sequence[RawRow]) -> list[str]:
    """Union des clés des lignes, dans l'ordre de première apparition."""
    seen: dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(str(key), None)
    return list(seen)


def infer_mapping(
    rows: Sequence[RawRow],
    field_patterns: dict[str, list[str]],
    *,
    config: Config | None = None,
    log: logging.Logger | None = None,
) -> ColumnMapping:
    """
    Résout les colonnes réelles des champs demandés.

    Chaque champ est résolu indépendamment par les en-têtes ; les champs
    restants passent par la reconnaissance de forme des cellules, sur les
    colonnes encore libres, et ne sont retenus qu'au-dessus de
    ``config.min_sniff_score``.

    Args:
        rows: Lignes brutes du fichier (seules les premières sont échantillonnées).
        field_patterns: {champ: [variantes d'en-têtes, par ordre de préférence]}.

    Returns:
        ColumnMapping (champ absent = pas de correspondance sûre).
    """
    config = config or Config()
    log = log or logger
    sample = sample_rows(rows, config.sample_size)
    headers = ordered_headers(sample)
    mapping = ColumnMapping()
    if not headers:
        return mapping

    for name, variants in field_patterns.items():
        found = best_header(headers, variants)
        if found is None:
            continue
        column, score = found
        mapping.columns[name] = column
        mapping.scores[name] = score
        mapping.sources[name] = "header"
        log.debug("Champ %s -> colonne %r (en-tête, score=%.1f)", name, column, score)

    claimed = set(mapping.columns.values())
    for name in field_patterns:
        if name in mapping.columns or name not in FIELD_SHAPES:
            continue
        shape = FIELD_SHAPES[name]
        best_col: str | None = None
        best_score = 0.0
        for header in headers:
            if header in claimed:
                continue
            sc = shape_score([row.get(header) for row in sample], shape)
            if sc > best_score:
                best_col, best_score = header, sc
        if log.isEnabledFor(logging.DEBUG):
            log.debug("Champ %s: meilleur contenu %r (score=%.2f)", name, best_col, best_score)
        if best_col is not None and best_score > config.min_sniff_score:
            mapping.columns[name] = best_col
            mapping.scores[name] = round(best_score * 100, 2)
            mapping.sources[name] = "content"
            claimed.add(best_col)

    return mapping


def classify_rows(
    rows: Sequence[RawRow],
    *,
    config: Config | None = None,
    log: logging.Logger | None = None,
) -> FileKind:
    """
    Devine si les lignes viennent d'un rapport de chargement ou de ventes.

    Les scores cumulent les en-têtes reconnus et les colonnes dont les cellules
    ont une forme typique (numéro de consignation, montant). Le score dominant
    l'emporte s'il atteint ``config.classification_floor`` ; sinon, ou à
    égalité, le fichier est inconnu.
    """
    config = config or Config()
    log = log or logger
    sample = sample_rows(rows, config.sample_size)
    if not sample:
        return FileKind.UNKNOWN

    load_score = 0.0
    sales_score = 0.0
    for header in ordered_headers(sample):
        h_load, h_sales = header_role_scores(header)
        load_score += h_load
        sales_score += h_sales
        values = [row.get(header) for row in sample]
        if shape_score(values, "consign") >= SHAPE_ROLE_THRESHOLD:
            load_score += 1.0
        if shape_score(values, "money") >= SHAPE_ROLE_THRESHOLD:
            sales_score += 1.0

    log.debug("Classification: score chargement=%.1f, ventes=%.1f", load_score, sales_score)
    floor = config.classification_floor
    if load_score >= floor and load_score > sales_score:
        return FileKind.LOAD
    if sales_score >= floor and sales_score > load_score:
        return FileKind.SALES
    return FileKind.UNKNOWN


def infer_schema(
    rows: Sequence[RawRow],
    expected: FileKind,
    *,
    config: Config | None = None,
    log: logging.Logger | None = None,
    source: str = "",
) -> ColumnMapping:
    """
    Classifie le fichier puis résout ses colonnes pour le rôle attendu.

    Raises:
        SchemaInferenceError: Si le fichier est inconnu, s'il ressemble à
            l'autre rapport (``config.strict_roles``) ou s'il manque un champ critique.
    """
    config = config or Config()
    log = log or logger
    label = source or expected.value

    kind = classify_rows(rows, config=config, log=log)
    if kind == FileKind.UNKNOWN:
        raise SchemaInferenceError(
            f"{label}: type de rapport non reconnu (ni chargement ni ventes). "
            "Vérifiez la ligne d'en-tête.",
            file_kind=kind,
        )
    if config.strict_roles and kind != expected:
        raise SchemaInferenceError(
            f"{label}: ressemble à un rapport de {_role_label(kind)}, "
            f"rapport de {_role_label(expected)} attendu.",
            file_kind=kind,
        )

    patterns = {name: config.field_patterns[name] for name in ROLE_FIELDS[expected]}
    mapping = infer_mapping(rows, patterns, config=config, log=log)
    missing = mapping.missing(CRITICAL_FIELDS[expected])
    if missing:
        raise SchemaInferenceError(
            f"{label}: colonne(s) introuvable(s): {', '.join(missing)}",
            file_kind=kind,
            missing_fields=missing,
        )
    log.info("%s: type=%s, colonnes=%s", label, kind.value, mapping.as_dict())
    return mapping


def _role_label(kind: FileKind) -> str:
    return "chargement" if kind == FileKind.LOAD else "ventes"
