"""Worker pour exécuter l'analyse dans un thread."""

from __future__ import annotations

from PySide6.QtCore import QObject, QThread, Signal

from laconsigne.config import Config
from laconsigne.detection.inferencer import SchemaInferenceError
from laconsigne.io_excel import DecodeError
from laconsigne.pipeline import analyze


class AnalysisWorker(QThread):
    """Thread exécutant analyze() sur les deux fichiers."""

    finished = Signal(object)  # AnalysisResult
    error = Signal(str, str)  # titre, message

    def __init__(
        self,
        load_file: str,
        sales_file: str,
        config: Config | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._load_file = load_file
        self._sales_file = sales_file
        self._config = config

    def run(self) -> None:
        """Exécute l'analyse ; en cas d'erreur, aucun résultat n'est émis."""
        try:
            result = analyze(self._load_file, self._sales_file, self._config)
        except DecodeError as e:
            self.error.emit("Fichier illisible", f"{e}\n\nRé-exportez le fichier puis réessayez.")
            return
        except SchemaInferenceError as e:
            self.error.emit("Fichier non reconnu", f"{e}\n\nVérifiez les en-têtes de colonnes.")
            return
        except Exception as e:
            self.error.emit("Erreur interne", str(e))
            return
        self.finished.emit(result)
