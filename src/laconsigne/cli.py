"""Interface en ligne de commande LaConsigne."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from laconsigne import __version__
from laconsigne.config import Config, ConfigError, ConfigFileError, LaConsigneError
from laconsigne.detection.inferencer import (
    ROLE_FIELDS,
    FileKind,
    SchemaInferenceError,
    classify_rows,
    infer_mapping,
)
from laconsigne.export import export_records
from laconsigne.io_excel import SUPPORTED_OUTPUT_EXTENSIONS, DecodeError, list_sheets, load_rows
from laconsigne.pipeline import analyze
from laconsigne.report import print_report_console

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_DECODE_ERROR = 2
EXIT_SCHEMA_ERROR = 3
EXIT_INTERNAL_ERROR = 4


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_config(config_path: str | None) -> Config:
    return Config.load(config_path) if config_path else Config()


def cmd_list_sheets(filepath: str) -> int:
    """Liste les feuilles d'un fichier tableur."""
    sheets = list_sheets(filepath)
    print(f"Feuilles dans {filepath}:")
    for s in sheets:
        print(f"  - {s}")
    return EXIT_SUCCESS


def cmd_inspect(filepath: str, role: str, config_path: str | None = None) -> int:
    """Affiche le type de rapport détecté et les colonnes retenues."""
    config = _load_config(config_path)
    sheet = config.load_sheet if role == "load" else config.sales_sheet
    rows = load_rows(filepath, sheet, role=role, header_row=config.header_row)
    kind = classify_rows(rows, config=config)
    expected = FileKind(role)
    patterns = {name: config.field_patterns[name] for name in ROLE_FIELDS[expected]}
    mapping = infer_mapping(rows, patterns, config=config)

    print(f"Fichier: {filepath}")
    print(f"  Lignes:        {len(rows)}")
    print(f"  Type détecté:  {kind.value}")
    for name in ROLE_FIELDS[expected]:
        column = mapping.get(name)
        if column is None:
            print(f"  {name:<14} -")
        else:
            print(f"  {name:<14} {column!r} ({mapping.sources[name]}, score={mapping.scores[name]:.1f})")
    return EXIT_SUCCESS


def cmd_run(
    load_file: str | None,
    sales_file: str | None,
    output_path: str | None,
    *,
    config_path: str | None = None,
    dry_run: bool = False,
) -> int:
    """Exécute le pipeline LaConsigne."""
    config = _load_config(config_path)
    load_file = load_file or config.load_file
    sales_file = sales_file or config.sales_file
    if not load_file or not sales_file:
        raise ConfigError("Fichiers requis: --load et --sales (ou load_file/sales_file dans la config)")
    if output_path and Path(output_path).suffix.lower() not in SUPPORTED_OUTPUT_EXTENSIONS:
        raise ConfigError(
            f"Format de sortie non supporté: {output_path}. Formats: {', '.join(SUPPORTED_OUTPUT_EXTENSIONS)}"
        )

    result = analyze(load_file, sales_file, config)
    print_report_console(result.statistics, currency_symbol=config.currency_symbol)
    if result.excluded_sales:
        print(f"Lignes de ventes écartées (référence invalide): {result.excluded_sales}")

    if dry_run:
        print("Mode dry-run: pas d'écriture du fichier de sortie.")
        return EXIT_SUCCESS

    if not output_path:
        print("Erreur: --output requis en mode non dry-run.", file=sys.stderr)
        return EXIT_COMMAND_ERROR

    out = export_records(
        output_path,
        result.records,
        result.statistics,
        currency_symbol=config.currency_symbol,
        excluded_sales=result.excluded_sales,
        load_file=result.load_file,
        sales_file=result.sales_file,
    )
    print(f"Fichier de sortie: {out}")
    return EXIT_SUCCESS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="laconsigne",
        description="Rapprochement des rapports de chargement et de ventes",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Journalisation détaillée")

    subparsers = parser.add_subparsers(dest="command", help="Commandes")

    p_list = subparsers.add_parser("list-sheets", help="Lister les feuilles d'un tableur")
    p_list.add_argument("file", help="Fichier tableur")

    p_inspect = subparsers.add_parser("inspect", help="Afficher le schéma détecté d'un rapport")
    p_inspect.add_argument("file", help="Fichier tableur")
    p_inspect.add_argument("--role", "-r", choices=["load", "sales"], required=True, help="Rôle attendu")
    p_inspect.add_argument("--config", "-c", help="Fichier config JSON")

    p_run = subparsers.add_parser("run", help="Exécuter le rapprochement")
    p_run.add_argument("--load", "-l", help="Rapport de chargement")
    p_run.add_argument("--sales", "-s", help="Rapport de ventes")
    p_run.add_argument("--config", "-c", help="Fichier config JSON")
    p_run.add_argument("--output", "-o", help="Fichier xlsx de sortie")
    p_run.add_argument("--dry-run", action="store_true", help="Ne pas écrire le fichier de sortie")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    try:
        if args.command == "list-sheets":
            return cmd_list_sheets(args.file)
        if args.command == "inspect":
            return cmd_inspect(args.file, args.role, args.config)
        if args.command == "run":
            if not args.dry_run and not args.output:
                parser.error("--output requis sauf en --dry-run")
            return cmd_run(
                args.load,
                args.sales,
                args.output,
                config_path=args.config,
                dry_run=args.dry_run,
            )
    except (ConfigError, ConfigFileError) as e:
        print(f"Erreur de configuration: {e}", file=sys.stderr)
        return EXIT_COMMAND_ERROR
    except DecodeError as e:
        print(f"Fichier illisible: {e}", file=sys.stderr)
        return EXIT_DECODE_ERROR
    except SchemaInferenceError as e:
        print(f"Fichier non reconnu: {e}", file=sys.stderr)
        return EXIT_SCHEMA_ERROR
    except LaConsigneError as e:
        print(f"Erreur interne: {e}", file=sys.stderr)
        return EXIT_INTERNAL_ERROR

    parser.print_help()
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
