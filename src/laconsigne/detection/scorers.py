"""Scores de correspondance en-tête ↔ champ et reconnaissance de forme des cellules."""

from __future__ import annotations

import re
from typing import Any, Sequence

from rapidfuzz import fuzz

from laconsigne.normalize import header_words, is_empty, norm_header

SCORE_EXACT = 100.0
SCORE_CONTAINS = 90.0
SCORE_WORD_OVERLAP_MAX = 70.0

CONSIGN_TOKEN_RE = re.compile(r"[A-Za-z]\d[A-Za-z]\d{6,}")
REFERENCE_RE = re.compile(r"\d{4,}")
COUNT_TEXT_RE = re.compile(r"^\s*\d+\s*$")
CURRENCY_RE = re.compile(r"(?:[$€£¥₹]|\bR\s?\d|\bZAR\b|\bUSD\b|\bEUR\b)")
TWO_DECIMALS_RE = re.compile(r"\d[.,]\d{2}\s*$")

# Forme de cellule attendue par champ, pour le repli sur le contenu.
FIELD_SHAPES: dict[str, str] = {
    "consign": "consign",
    "supplier_ref": "reference",
    "cartons_sent": "count",
    "received": "count",
    "sold": "count",
    "total_value": "money",
}

LOAD_HEADER_PATTERNS = [
    re.compile(p)
    for p in (r"consign", r"\bcons\b", r"\bctns?\b|carton", r"variet", r"pallet", r"\bload\b", r"\bpack")
]
SALES_HEADER_PATTERNS = [
    re.compile(p)
    for p in (r"supplier", r"grower", r"receiv", r"\bsold\b", r"value", r"sales|market", r"price")
]


def score_header(header: str, variant: str) -> float:
    """
    Score (0-100) d'un en-tête face à une variante de nom.

    Priorité : égalité (100) > inclusion (90) > recouvrement de mots (<= 70).
    La comparaison se fait sur la forme normalisée (minuscules, alphanumérique).
    """
    h = norm_header(header)
    v = norm_header(variant)
    if not h or not v:
        return 0.0
    if h == v:
        return SCORE_EXACT
    if v in h or h in v:
        return SCORE_CONTAINS

    h_words = header_words(header)
    v_words = header_words(variant)
    if not set(h_words) & set(v_words):
        return 0.0
    ratio = fuzz.token_set_ratio(" ".join(h_words), " ".join(v_words))
    return round(ratio * SCORE_WORD_OVERLAP_MAX / 100.0, 2)


def best_header(headers: Sequence[str], variants: Sequence[str]) -> tuple[str, float] | None:
    """
    Choisit l'en-tête le plus proche des variantes d'un champ.

    Ordre de décision : meilleur score, puis variante la plus tôt dans la
    liste, puis en-tête le plus à gauche.

    Returns:
        (en-tête, score) ou None si aucun score non nul.
    """
    best: tuple[float, int, int] | None = None
    for v_idx, variant in enumerate(variants):
        for h_idx, header in enumerate(headers):
            sc = score_header(header, variant)
            if sc <= 0:
                continue
            rank = (-sc, v_idx, h_idx)
            if best is None or rank < best:
                best = rank
    if best is None:
        return None
    return headers[best[2]], -best[0]


def _is_integral_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return float(value)
    if isinstance(value, float) and value.is_integer():
        return value
    if isinstance(value, str) and COUNT_TEXT_RE.match(value):
        return float(value.strip())
    return None


def looks_like(value: Any, shape: str) -> bool:
    """Vrai si la cellule a la forme attendue (consign, reference, count, money)."""
    if is_empty(value):
        return False
    if shape == "count":
        number = _is_integral_number(value)
        return number is not None and 0 <= number < 1000
    if shape == "money":
        if isinstance(value, float):
            return not value.is_integer() and round(value, 2) == value
        if isinstance(value, str):
            return bool(CURRENCY_RE.search(value) and re.search(r"\d", value)) or bool(
                TWO_DECIMALS_RE.search(value)
            )
        return False
    if not isinstance(value, str):
        return False
    if shape == "consign":
        return bool(CONSIGN_TOKEN_RE.search(value))
    if shape == "reference":
        return bool(REFERENCE_RE.search(value)) and any(ch.isalpha() for ch in value)
    return False


def shape_score(values: Sequence[Any], shape: str) -> float:
    """Part (0-1) des cellules non vides qui ont la forme attendue."""
    non_empty = [v for v in values if not is_empty(v)]
    if not non_empty:
        return 0.0
    return sum(1 for v in non_empty if looks_like(v, shape)) / len(non_empty)


def header_role_scores(header: str) -> tuple[float, float]:
    """Contribution d'un en-tête aux scores (chargement, ventes)."""
    text = " ".join(header_words(header))
    load = sum(1.0 for p in LOAD_HEADER_PATTERNS if p.search(text))
    sales = sum(1.0 for p in SALES_HEADER_PATTERNS if p.search(text))
    return load, sales
