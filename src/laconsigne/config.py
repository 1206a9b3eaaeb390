"""Configuration et chargement du fichier config JSON."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# Champs sémantiques reconnus dans les rapports de chargement et de ventes.
FIELDS = (
    "consign",
    "supplier_ref",
    "variety",
    "carton_type",
    "cartons_sent",
    "received",
    "sold",
    "total_value",
)

# Variantes d'en-têtes, par ordre de préférence. Données, pas code :
# surchargeables champ par champ via la clé "field_patterns" du JSON.
DEFAULT_FIELD_PATTERNS: dict[str, list[str]] = {
    "consign": ["consign", "consignment", "consignment number", "cons no", "cons number", "load ref", "pallet no"],
    "supplier_ref": ["supplier ref", "supplier reference", "grower ref", "grower reference", "supplier"],
    "variety": ["variety", "varieties", "product", "fruit type", "commodity"],
    "carton_type": ["ctn type", "carton type", "package type", "packaging", "pack"],
    "cartons_sent": ["sum of # ctns", "# ctns", "ctns", "cartons", "qty sent", "quantity sent"],
    "received": ["received", "qty received", "quantity received", "rec qty", "ctns received"],
    "sold": ["sold", "qty sold", "quantity sold", "sales qty", "sold on market"],
    "total_value": ["total value", "sales value", "total sales", "gross value", "value"],
}

SHEET_PATTERNS: dict[str, str] = {
    "load": r"load|dispatch|consign",
    "sales": r"sales|account|market",
}


class LaConsigneError(Exception):
    """Exception de base pour LaConsigne."""


class ConfigError(LaConsigneError, ValueError):
    """Erreur de validation de la configuration."""


class ConfigFileError(LaConsigneError):
    """Erreur de chargement du fichier de configuration (fichier absent, JSON invalide)."""


def _as_number(d: dict[str, Any], key: str, default: Any, kind: type) -> Any:
    value = d.get(key, default)
    if isinstance(value, bool):
        raise ConfigError(f"{key} doit être un nombre (got {value!r})")
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} doit être un nombre (got {value!r})") from e


def _as_bool(d: dict[str, Any], key: str, default: bool) -> bool:
    value = d.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"{key} doit être true ou false (got {value!r})")
    return value


def _merge_field_patterns(overrides: Any) -> dict[str, list[str]]:
    patterns = {k: list(v) for k, v in DEFAULT_FIELD_PATTERNS.items()}
    if overrides is None:
        return patterns
    if not isinstance(overrides, dict):
        raise ConfigError("field_patterns doit être un objet {champ: [variantes]}")
    for name, variants in overrides.items():
        if name not in FIELDS:
            raise ConfigError(f"field_patterns: champ inconnu {name!r}. Valides: {list(FIELDS)}")
        if not isinstance(variants, list) or not variants or not all(isinstance(v, str) for v in variants):
            raise ConfigError(f"field_patterns[{name!r}] doit être une liste non vide de chaînes")
        patterns[name] = list(variants)
    return patterns


@dataclass
class Config:
    """Configuration principale de LaConsigne."""

    load_file: str = ""
    sales_file: str = ""
    load_sheet: str | None = None  # None = feuille détectée par nom, sinon première non vide
    sales_sheet: str | None = None
    header_row: int = 1

    sample_size: int = 10
    min_sniff_score: float = 0.6
    classification_floor: float = 2.0
    split_tolerance: int = 1
    strict_roles: bool = True
    currency_symbol: str = "R"

    field_patterns: dict[str, list[str]] = field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_FIELD_PATTERNS.items()}
    )

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Config:
        header_row = _as_number(d, "header_row", 1, int)
        sample_size = _as_number(d, "sample_size", 10, int)
        min_sniff_score = _as_number(d, "min_sniff_score", 0.6, float)
        classification_floor = _as_number(d, "classification_floor", 2.0, float)
        split_tolerance = _as_number(d, "split_tolerance", 1, int)
        currency_symbol = d.get("currency_symbol", "R")

        if header_row < 1:
            raise ConfigError(f"header_row doit être >= 1 (got {header_row})")
        if not 1 <= sample_size <= 50:
            raise ConfigError(f"sample_size doit être entre 1 et 50 (got {sample_size})")
        if not 0 <= min_sniff_score <= 1:
            raise ConfigError(f"min_sniff_score doit être entre 0 et 1 (got {min_sniff_score})")
        if classification_floor <= 0:
            raise ConfigError(f"classification_floor doit être > 0 (got {classification_floor})")
        if split_tolerance < 0:
            raise ConfigError(f"split_tolerance doit être >= 0 (got {split_tolerance})")
        if not isinstance(currency_symbol, str):
            raise ConfigError(f"currency_symbol invalide: {currency_symbol!r}")

        return cls(
            load_file=d.get("load_file", ""),
            sales_file=d.get("sales_file", ""),
            load_sheet=d.get("load_sheet"),
            sales_sheet=d.get("sales_sheet"),
            header_row=header_row,
            sample_size=sample_size,
            min_sniff_score=min_sniff_score,
            classification_floor=classification_floor,
            split_tolerance=split_tolerance,
            strict_roles=_as_bool(d, "strict_roles", True),
            currency_symbol=currency_symbol,
            field_patterns=_merge_field_patterns(d.get("field_patterns")),
        )

    @classmethod
    def load(cls, path: str | Path) -> Config:
        """
        Charge la configuration depuis un fichier JSON.

        Raises:
            ConfigFileError: Si le fichier est absent ou le JSON invalide.
            ConfigError: Si la configuration est invalide.
        """
        path = Path(path).resolve()
        if not path.exists():
            raise ConfigFileError(f"Fichier de configuration introuvable: {path}")

        try:
            with open(path, encoding="utf-8") as f:
                d = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigFileError(f"JSON invalide dans {path}: {e}") from e
        except OSError as e:
            raise ConfigFileError(f"Impossible de lire {path}: {e}") from e

        if not isinstance(d, dict):
            raise ConfigFileError(f"Fichier de configuration invalide: {path} doit contenir un objet JSON")

        config = cls.from_dict(d)
        config.resolve_paths(path.parent)
        return config

    def resolve_paths(self, base_dir: Path) -> None:
        """
        Résout les chemins relatifs par rapport au répertoire de base (ex. dossier du fichier config).

        Modifie load_file et sales_file en place.
        """
        base = Path(base_dir)
        if self.load_file and not Path(self.load_file).is_absolute():
            self.load_file = str((base / self.load_file).resolve())
        if self.sales_file and not Path(self.sales_file).is_absolute():
            self.sales_file = str((base / self.sales_file).resolve())
