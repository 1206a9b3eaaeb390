"""LaConsigne - Rapprochement des rapports de chargement et de ventes."""

from laconsigne.config import ConfigError, ConfigFileError, LaConsigneError
from laconsigne.detection.inferencer import SchemaInferenceError
from laconsigne.io_excel import DecodeError
from laconsigne.matching.linker import MatchInputError

__all__ = [
    "__version__",
    "LaConsigneError",
    "ConfigError",
    "ConfigFileError",
    "DecodeError",
    "SchemaInferenceError",
    "MatchInputError",
]

__version__ = "0.1.0"
