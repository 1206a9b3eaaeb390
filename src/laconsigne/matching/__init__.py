"""Module de rapprochement."""

from laconsigne.matching.linker import Linker, MatchInputError, match
from laconsigne.matching.schema import LoadRecord, MatchedRecord, MatchStatus, SalesRecord

__all__ = [
    "Linker",
    "LoadRecord",
    "MatchInputError",
    "MatchStatus",
    "MatchedRecord",
    "SalesRecord",
    "match",
]
