"""Workers pour exécution asynchrone."""

from laconsigne_gui.workers.analysis_worker import AnalysisWorker
from laconsigne_gui.workers.export_worker import ExportWorker

__all__ = ["AnalysisWorker", "ExportWorker"]
