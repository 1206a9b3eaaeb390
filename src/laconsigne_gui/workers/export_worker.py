"""Worker pour exécuter l'export dans un thread."""

from __future__ import annotations

from pathlib import Path

from PySide6.QtCore import QObject, QThread, Signal

from laconsigne.export import export_records
from laconsigne.pipeline import AnalysisResult


class ExportWorker(QThread):
    """Thread exécutant export_records."""

    finished = Signal(str)  # out_xlsx
    error = Signal(str)

    def __init__(
        self,
        result: AnalysisResult,
        out_xlsx: str | Path,
        currency_symbol: str = "R",
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._result = result
        self._out_xlsx = Path(out_xlsx)
        self._currency_symbol = currency_symbol

    def run(self) -> None:
        try:
            out = export_records(
                self._out_xlsx,
                self._result.records,
                self._result.statistics,
                currency_symbol=self._currency_symbol,
                excluded_sales=self._result.excluded_sales,
                load_file=self._result.load_file,
                sales_file=self._result.sales_file,
            )
        except Exception as e:
            self.error.emit(str(e))
            return
        self.finished.emit(str(out))
