"""Clés de rapprochement et index pour réduire l'espace de recherche."""

from __future__ import annotations

from typing import Any, Iterable

from laconsigne.matching.schema import LoadRecord, SalesRecord

INVALID_REF_MARKERS = ("DESTINATION:", "(Pre)")
ASCII_DIGITS = "0123456789"


def _text(value: Any) -> str:
    if value is None or (isinstance(value, float) and value != value):
        return ""
    return str(value).strip()


def digits_only(reference: Any) -> str:
    return "".join(ch for ch in _text(reference) if ch in ASCII_DIGITS)


def last_four_digits(reference: Any) -> str:
    """
    Clé de rapprochement : les 4 derniers chiffres de la référence.

    Moins de 4 chiffres → ceux disponibles ; aucun chiffre → "" (pas d'indexation).
    """
    return digits_only(reference)[-4:]


def is_valid_reference(ref: Any) -> bool:
    """
    Filtre des références de ventes.

    Les annotations de feuille ("DESTINATION: ...", "... (Pre)") ne sont pas
    des références ; une référence doit contenir au moins un chiffre.
    """
    text = _text(ref)
    if not text:
        return False
    if any(marker in text for marker in INVALID_REF_MARKERS):
        return False
    return any(ch in ASCII_DIGITS for ch in text)


def group_load_records(records: Iterable[LoadRecord]) -> list[tuple[str, list[LoadRecord]]]:
    """
    Regroupe les chargements par numéro de consignation complet.

    L'ordre des groupes est celui de la première occurrence. Un numéro vide
    ne regroupe rien : chaque ligne sans numéro forme son propre groupe.

    Returns:
        Liste de (consign, [LoadRecord]).
    """
    groups: dict[str, list[LoadRecord]] = {}
    ordered: list[tuple[str, list[LoadRecord]]] = []
    for record in records:
        if not record.consign:
            ordered.append(("", [record]))
            continue
        if record.consign not in groups:
            groups[record.consign] = []
            ordered.append((record.consign, groups[record.consign]))
        groups[record.consign].append(record)
    return ordered


def build_sales_index(records: Iterable[SalesRecord]) -> dict[str, list[int]]:
    """
    Construit un index : clé 4 chiffres -> positions des ventes partageant cette clé.

    Seules les références valides avec une clé non vide sont indexées. Plusieurs
    références sans rapport peuvent partager une clé ; la quantité départage.
    """
    index: dict[str, list[int]] = {}
    for pos, record in enumerate(records):
        if not is_valid_reference(record.supplier_ref):
            continue
        key = last_four_digits(record.supplier_ref)
        if not key:
            continue
        if key not in index:
            index[key] = []
        index[key].append(pos)
    return index
