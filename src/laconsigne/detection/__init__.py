"""Inférence de schéma des rapports."""

from laconsigne.detection.inferencer import (
    ColumnMapping,
    FileKind,
    SchemaInferenceError,
    classify_rows,
    infer_mapping,
    infer_schema,
)

__all__ = [
    "ColumnMapping",
    "FileKind",
    "SchemaInferenceError",
    "classify_rows",
    "infer_mapping",
    "infer_schema",
]
