"""État de l'application GUI."""

from __future__ import annotations

from dataclasses import dataclass

from laconsigne.config import Config
from laconsigne.pipeline import AnalysisResult
from laconsigne.table import ALL


@dataclass
class AppState:
    """État central de l'application (une session, rien n'est persisté)."""

    load_file: str = ""
    sales_file: str = ""
    config: Config | None = None

    # Dernière analyse ; remplacée en bloc à chaque exécution réussie
    result: AnalysisResult | None = None

    status_filter: str = ALL
    variety_filter: str = ALL
    reconciled_filter: str = ALL
    group_rows: bool = False

    def ready(self) -> bool:
        return bool(self.load_file and self.sales_file)

    def reset_filters(self) -> None:
        self.status_filter = ALL
        self.variety_filter = ALL
        self.reconciled_filter = ALL
