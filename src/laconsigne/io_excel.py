"""I/O tableurs : décodage des rapports en lignes brutes, sauvegarde (Excel, ODS, CSV)."""

from __future__ import annotations

import csv
import re
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd

from laconsigne.config import SHEET_PATTERNS, ConfigError, LaConsigneError
from laconsigne.normalize import RawRow, is_empty

# Formats supportés
SUPPORTED_INPUT_EXTENSIONS = (".xlsx", ".xls", ".ods", ".csv")
SUPPORTED_INPUT_FILTER = "Tableurs (*.xlsx *.xls *.ods *.csv);;Excel (*.xlsx *.xls);;ODS (*.ods);;CSV (*.csv);;Tous (*.*)"
SUPPORTED_OUTPUT_EXTENSIONS = (".xlsx", ".ods")

_UNNAMED_RE = re.compile(r"^Unnamed: \d+$")


class DecodeError(LaConsigneError):
    """Fichier illisible ou non reconnu comme tableur (fichier absent, feuille inexistante)."""


def _get_engine(path: Path) -> str | None:
    """Retourne le moteur pandas selon l'extension, ou None pour auto."""
    suffix = path.suffix.lower()
    if suffix == ".xlsx":
        return "openpyxl"
    if suffix == ".xls":
        return "xlrd"
    if suffix in (".ods", ".odt"):
        return "odf"
    return None


def _is_csv(path: Path) -> bool:
    return path.suffix.lower() in (".csv", ".txt")


def _detect_csv_delimiter(path: Path, encoding: str, *, skip_rows: int = 0) -> str | None:
    try:
        with path.open("r", encoding=encoding, errors="replace") as f:
            for _ in range(skip_rows):
                if f.readline() == "":
                    return None
            sample_lines: list[str] = []
            for line in f:
                if line.strip() == "":
                    continue
                sample_lines.append(line)
                if len(sample_lines) >= 5:
                    break
    except OSError:
        return None
    if not sample_lines:
        return None
    sample = "".join(sample_lines)
    try:
        dialect = csv.Sniffer().sniff(sample, delimiters=[",", ";", "\t", "|"])
        return dialect.delimiter
    except csv.Error:
        first = sample_lines[0]
        counts = {d: first.count(d) for d in [",", ";", "\t", "|"]}
        best = max(counts, key=counts.get)
        return best if counts[best] > 0 else None


def _open_workbook(path: Path) -> pd.ExcelFile:
    try:
        engine = _get_engine(path)
        return pd.ExcelFile(path, engine=engine) if engine else pd.ExcelFile(path)
    except ImportError as e:
        ext = path.suffix.lower()
        if ext == ".xls":
            raise DecodeError(f"Format .xls requis: pip install xlrd. Détail: {e}") from e
        if ext in (".ods", ".odt"):
            raise DecodeError(f"Format ODS requis: pip install odfpy. Détail: {e}") from e
        raise DecodeError(f"Impossible de lire {path}: {e}") from e
    except Exception as e:
        raise DecodeError(f"Impossible de lire le fichier {path}: {e}") from e


def _read_csv(path: Path, header_idx: int) -> pd.DataFrame:
    skip = range(header_idx) if header_idx > 0 else None
    last_error: Exception | None = None
    for encoding in ("utf-8", "latin-1"):
        delimiter = _detect_csv_delimiter(path, encoding, skip_rows=header_idx) or ","
        try:
            return pd.read_csv(path, dtype=str, encoding=encoding, skiprows=skip, sep=delimiter)
        except UnicodeDecodeError as e:
            last_error = e
            continue
        except pd.errors.EmptyDataError:
            return pd.DataFrame()
        except pd.errors.ParserError:
            try:
                # Lignes invalides ignorées, moteur python plus tolérant.
                return pd.read_csv(
                    path,
                    dtype=str,
                    encoding=encoding,
                    skiprows=skip,
                    sep=delimiter,
                    engine="python",
                    on_bad_lines="warn",
                )
            except Exception as e:
                raise DecodeError(
                    f"Erreur CSV {path}: {e}. Vérifiez la ligne d'en-tête et le séparateur."
                ) from e
        except Exception as e:
            raise DecodeError(f"Erreur CSV {path}: {e}") from e
    raise DecodeError(f"Erreur CSV {path}: encodage non reconnu ({last_error})")


def list_sheets(filepath: str | Path) -> list[str]:
    """
    Liste les noms des feuilles d'un fichier tableur.

    Formats supportés : .xlsx, .xls, .ods, .csv (une seule "feuille" pour CSV).

    Raises:
        DecodeError: Si le fichier est absent ou illisible.
    """
    path = Path(filepath)
    if not path.exists():
        raise DecodeError(f"Fichier introuvable: {path}")
    if _is_csv(path):
        return ["(données)"]
    xl = _open_workbook(path)
    return [str(s) for s in xl.sheet_names]


def pick_sheet(sheet_names: list[str], role: str | None = None) -> list[str]:
    """
    Ordonne les feuilles candidates pour un rôle (load, sales).

    Les feuilles dont le nom correspond au motif du rôle passent en tête ;
    les autres suivent dans l'ordre du classeur.
    """
    pattern = SHEET_PATTERNS.get(role or "")
    if not pattern:
        return list(sheet_names)
    rx = re.compile(pattern, re.IGNORECASE)
    preferred = [s for s in sheet_names if rx.search(s)]
    return preferred + [s for s in sheet_names if s not in preferred]


def load_sheet(
    filepath: str | Path,
    sheet_name: str | None = None,
    *,
    role: str | None = None,
    header_row: int = 1,
) -> pd.DataFrame:
    """
    Charge une feuille dans un DataFrame en préservant les types natifs des cellules.

    Sans ``sheet_name``, prend la première feuille non vide, en privilégiant
    celles dont le nom évoque le rôle (voir ``pick_sheet``).

    Args:
        filepath: Chemin vers le fichier.
        sheet_name: Nom de la feuille. Ignoré pour CSV.
        role: "load" ou "sales", pour le choix automatique de la feuille.
        header_row: Numéro de ligne (1-based) contenant les en-têtes.

    Raises:
        DecodeError: Si le fichier est absent, illisible ou si la feuille n'existe pas.
    """
    path = Path(filepath)
    if not path.exists():
        raise DecodeError(f"Fichier introuvable: {path}")

    header_idx = max(header_row - 1, 0)
    if _is_csv(path):
        return _read_csv(path, header_idx)

    xl = _open_workbook(path)
    sheets = [str(s) for s in xl.sheet_names]
    if sheet_name is not None and sheet_name not in sheets:
        raise DecodeError(
            f"Feuille '{sheet_name}' introuvable dans {path}. Feuilles: {', '.join(sheets)}"
        )

    candidates = [sheet_name] if sheet_name is not None else pick_sheet(sheets, role)
    df = pd.DataFrame()
    for name in candidates:
        try:
            df = pd.read_excel(xl, sheet_name=name, dtype=object, header=header_idx)
        except Exception as e:
            raise DecodeError(f"Erreur feuille '{name}' dans {path}: {e}") from e
        if not df.dropna(how="all").empty:
            return df
    return df


def _to_cell(value: Any) -> Any:
    if value is None or value is pd.NaT or value is pd.NA or is_empty(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, datetime):
        return value
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        # scalaires numpy -> types Python
        return value.item()
    if isinstance(value, str):
        return value.strip() or None
    return value


def dataframe_to_rows(df: pd.DataFrame) -> list[RawRow]:
    """
    Convertit un DataFrame en lignes brutes {en-tête: cellule}.

    Les lignes entièrement vides et les colonnes sans en-tête ni contenu
    ("Unnamed: n") sont ignorées ; les cellules vides sont absentes de la ligne.
    """
    keep = [
        c
        for c in df.columns
        if not (_UNNAMED_RE.match(str(c)) and df[c].isna().all())
    ]
    rows: list[RawRow] = []
    for record in df[keep].itertuples(index=False, name=None):
        row: RawRow = {}
        for column, value in zip(keep, record):
            cell = _to_cell(value)
            if cell is not None:
                row[str(column).strip()] = cell
        if row:
            rows.append(row)
    return rows


def load_rows(
    filepath: str | Path,
    sheet_name: str | None = None,
    *,
    role: str | None = None,
    header_row: int = 1,
) -> list[RawRow]:
    """Décode un fichier tableur en lignes brutes (une feuille)."""
    df = load_sheet(filepath, sheet_name, role=role, header_row=header_row)
    return dataframe_to_rows(df)


def save_spreadsheet(
    filepath: str | Path,
    dataframes: dict[str, pd.DataFrame],
    *,
    header: bool = True,
    index: bool = False,
) -> None:
    """
    Sauvegarde plusieurs DataFrames dans un fichier xlsx ou ods (une feuille par DataFrame).

    Args:
        filepath: Chemin de sortie (.xlsx ou .ods).
        dataframes: Dict {nom_feuille: DataFrame}.

    Raises:
        ConfigError: Si l'extension de sortie n'est pas supportée.
    """
    path = Path(filepath)
    suffix = path.suffix.lower()
    if suffix == ".ods":
        engine = "odf"
    elif suffix == ".xlsx":
        engine = "openpyxl"
    else:
        raise ConfigError(
            f"Format de sortie non supporté: {suffix or '(aucun)'}. Formats: {', '.join(SUPPORTED_OUTPUT_EXTENSIONS)}"
        )

    with pd.ExcelWriter(path, engine=engine) as writer:
        for sheet_name, df in dataframes.items():
            # Excel limite les noms de feuille à 31 caractères
            safe_name = str(sheet_name)[:31]
            df.to_excel(writer, sheet_name=safe_name, index=index, header=header)
