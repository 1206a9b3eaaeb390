"""Modèles Qt pour LaConsigne GUI."""

from laconsigne_gui.models.records_model import RecordsModel

__all__ = ["RecordsModel"]
