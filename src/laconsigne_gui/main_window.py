"""Fenêtre principale : fichiers, analyse, tableau filtrable, export."""

from __future__ import annotations

from pathlib import Path

from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QFileDialog,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QTableView,
    QVBoxLayout,
    QWidget,
)

from laconsigne.config import Config
from laconsigne.io_excel import SUPPORTED_INPUT_FILTER
from laconsigne.matching.schema import MatchStatus
from laconsigne.pipeline import AnalysisResult
from laconsigne.table import (
    ALL,
    NOT_RECONCILED,
    RECONCILED,
    filter_groups,
    filter_records,
    format_number,
    group_records,
    sort_groups_reconciled_first,
    sort_reconciled_first,
    unique_varieties,
)
from laconsigne_gui.models import RecordsModel
from laconsigne_gui.state import AppState
from laconsigne_gui.workers import AnalysisWorker, ExportWorker


class MainWindow(QMainWindow):
    """Fenêtre unique : sélection des rapports, statistiques, registre rapproché."""

    def __init__(self) -> None:
        super().__init__()
        self._state = AppState(config=Config())
        self._analysis_worker: AnalysisWorker | None = None
        self._export_worker: ExportWorker | None = None
        self._setup_ui()
        self._update_buttons()

    def _setup_ui(self) -> None:
        self.setWindowTitle("LaConsigne - Rapprochement chargements / ventes")
        self.setMinimumSize(1000, 700)
        self.resize(1300, 820)

        central = QWidget()
        layout = QVBoxLayout(central)

        file_group = QGroupBox("Fichiers")
        file_layout = QFormLayout()
        self._load_edit = QLineEdit()
        self._load_edit.setPlaceholderText("Rapport de chargement (xlsx, xls, ods, csv)...")
        self._load_edit.textChanged.connect(self._on_paths_changed)
        load_row = QHBoxLayout()
        load_row.addWidget(self._load_edit)
        browse_load = QPushButton("Parcourir")
        browse_load.clicked.connect(lambda: self._browse(self._load_edit))
        load_row.addWidget(browse_load)
        file_layout.addRow("Chargement:", load_row)

        self._sales_edit = QLineEdit()
        self._sales_edit.setPlaceholderText("Rapport de ventes (xlsx, xls, ods, csv)...")
        self._sales_edit.textChanged.connect(self._on_paths_changed)
        sales_row = QHBoxLayout()
        sales_row.addWidget(self._sales_edit)
        browse_sales = QPushButton("Parcourir")
        browse_sales.clicked.connect(lambda: self._browse(self._sales_edit))
        sales_row.addWidget(browse_sales)
        file_layout.addRow("Ventes:", sales_row)
        file_group.setLayout(file_layout)
        layout.addWidget(file_group)

        actions = QHBoxLayout()
        self._analyse_btn = QPushButton("Analyser")
        self._analyse_btn.clicked.connect(self._run_analysis)
        actions.addWidget(self._analyse_btn)
        self._export_btn = QPushButton("Exporter")
        self._export_btn.clicked.connect(self._run_export)
        actions.addWidget(self._export_btn)
        actions.addStretch()
        layout.addLayout(actions)

        stats_group = QGroupBox("Statistiques")
        stats_layout = QHBoxLayout()
        self._stats_labels: dict[str, QLabel] = {}
        for key, title in (
            ("total", "Lignes"),
            ("matched", "Rapprochées"),
            ("split", "Fractionnées"),
            ("unmatched", "Non rapprochées"),
            ("value", "Valeur totale"),
            ("average", "Valeur moyenne"),
            ("rate", "Taux"),
        ):
            label = QLabel(f"{title}: -")
            self._stats_labels[key] = label
            stats_layout.addWidget(label)
        stats_layout.addStretch()
        stats_group.setLayout(stats_layout)
        layout.addWidget(stats_group)

        filters = QHBoxLayout()
        filters.addWidget(QLabel("Statut:"))
        self._status_combo = QComboBox()
        self._status_combo.addItem("Tous", ALL)
        for status in MatchStatus:
            self._status_combo.addItem(status.value, status.value)
        self._status_combo.currentIndexChanged.connect(self._on_filters_changed)
        filters.addWidget(self._status_combo)

        filters.addWidget(QLabel("Variété:"))
        self._variety_combo = QComboBox()
        self._variety_combo.addItem("Toutes", ALL)
        self._variety_combo.currentIndexChanged.connect(self._on_filters_changed)
        filters.addWidget(self._variety_combo)

        filters.addWidget(QLabel("Rapprochement:"))
        self._reconciled_combo = QComboBox()
        self._reconciled_combo.addItem("Tous", ALL)
        self._reconciled_combo.addItem("Sans écart", RECONCILED)
        self._reconciled_combo.addItem("Avec écart", NOT_RECONCILED)
        self._reconciled_combo.currentIndexChanged.connect(self._on_filters_changed)
        filters.addWidget(self._reconciled_combo)

        self._group_check = QCheckBox("Regrouper par consign / référence")
        self._group_check.toggled.connect(self._on_filters_changed)
        filters.addWidget(self._group_check)
        filters.addStretch()
        layout.addLayout(filters)

        self._model = RecordsModel(self)
        self._table = QTableView()
        self._table.setModel(self._model)
        self._table.setAlternatingRowColors(False)
        self._table.setSelectionBehavior(QTableView.SelectionBehavior.SelectRows)
        self._table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeMode.Interactive)
        self._table.horizontalHeader().setStretchLastSection(True)
        layout.addWidget(self._table, 1)

        self._status_label = QLabel("")
        layout.addWidget(self._status_label)

        self.setCentralWidget(central)

    def _browse(self, edit: QLineEdit) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Sélectionner fichier tableur", "", SUPPORTED_INPUT_FILTER)
        if path:
            edit.setText(path)

    def _on_paths_changed(self) -> None:
        self._state.load_file = self._load_edit.text().strip()
        self._state.sales_file = self._sales_edit.text().strip()
        self._update_buttons()

    def _update_buttons(self) -> None:
        busy = self._analysis_worker is not None or self._export_worker is not None
        self._analyse_btn.setEnabled(self._state.ready() and not busy)
        self._export_btn.setEnabled(self._state.result is not None and not busy)

    def _run_analysis(self) -> None:
        """Lance l'analyse dans un worker (une seule à la fois)."""
        if self._analysis_worker is not None or not self._state.ready():
            return
        self._status_label.setText("Analyse en cours...")
        self._analysis_worker = AnalysisWorker(
            self._state.load_file, self._state.sales_file, self._state.config, self
        )
        self._analysis_worker.finished.connect(self._on_analysis_finished)
        self._analysis_worker.error.connect(self._on_analysis_error)
        self._update_buttons()
        self._analysis_worker.start()

    def _on_analysis_finished(self, result: AnalysisResult) -> None:
        self._analysis_worker = None
        self._state.result = result
        self._state.reset_filters()
        self._refresh_varieties()
        self._refresh_stats()
        self._refresh_table()
        msg = f"{len(result.records)} lignes"
        if result.excluded_sales:
            msg += f" ({result.excluded_sales} ligne(s) de ventes ignorée(s), référence invalide)"
        self._status_label.setText(msg)
        self._update_buttons()

    def _on_analysis_error(self, title: str, msg: str) -> None:
        self._analysis_worker = None
        self._status_label.setText("")
        self._update_buttons()
        QMessageBox.critical(self, title, msg)

    def _refresh_varieties(self) -> None:
        self._variety_combo.blockSignals(True)
        self._variety_combo.clear()
        self._variety_combo.addItem("Toutes", ALL)
        if self._state.result is not None:
            for variety in unique_varieties(self._state.result.records):
                self._variety_combo.addItem(variety, variety)
        self._variety_combo.blockSignals(False)
        for combo in (self._status_combo, self._reconciled_combo):
            combo.blockSignals(True)
            combo.setCurrentIndex(0)
            combo.blockSignals(False)

    def _refresh_stats(self) -> None:
        result = self._state.result
        if result is None:
            return
        stats = result.statistics
        symbol = self._state.config.currency_symbol if self._state.config else "R"
        self._stats_labels["total"].setText(f"Lignes: {format_number(stats.total_records)}")
        self._stats_labels["matched"].setText(f"Rapprochées: {format_number(stats.matched_count)}")
        self._stats_labels["split"].setText(f"Fractionnées: {format_number(stats.split_count)}")
        self._stats_labels["unmatched"].setText(f"Non rapprochées: {format_number(stats.unmatched_count)}")
        self._stats_labels["value"].setText(
            f"Valeur totale: {format_number(stats.total_value, 'currency', currency_symbol=symbol)}"
        )
        self._stats_labels["average"].setText(
            f"Valeur moyenne: {format_number(stats.average_value, 'currency', currency_symbol=symbol)}"
        )
        self._stats_labels["rate"].setText(f"Taux: {format_number(stats.match_rate, 'percent')}")

    def _on_filters_changed(self) -> None:
        self._state.status_filter = self._status_combo.currentData() or ALL
        self._state.variety_filter = self._variety_combo.currentData() or ALL
        self._state.reconciled_filter = self._reconciled_combo.currentData() or ALL
        self._state.group_rows = self._group_check.isChecked()
        self._refresh_table()

    def _refresh_table(self) -> None:
        result = self._state.result
        if result is None:
            self._model.set_records([])
            return
        if self._state.config:
            self._model.set_currency_symbol(self._state.config.currency_symbol)
        if self._state.group_rows:
            groups = filter_groups(
                group_records(result.records),
                status=self._state.status_filter,
                variety=self._state.variety_filter,
                reconciled=self._state.reconciled_filter,
            )
            self._model.set_groups(sort_groups_reconciled_first(groups))
        else:
            records = filter_records(
                result.records,
                status=self._state.status_filter,
                variety=self._state.variety_filter,
                reconciled=self._state.reconciled_filter,
            )
            self._model.set_records(sort_reconciled_first(records))
        self._table.resizeColumnsToContents()

    def _run_export(self) -> None:
        """Lance l'export du registre complet dans un worker."""
        result = self._state.result
        if result is None:
            QMessageBox.critical(self, "Erreur", "Aucun résultat. Lancez d'abord l'analyse.")
            return
        default = str(Path(self._state.load_file).with_name("matching_report.xlsx"))
        path, _ = QFileDialog.getSaveFileName(self, "Fichier xlsx de sortie", default, "Excel (*.xlsx)")
        if not path:
            return
        symbol = self._state.config.currency_symbol if self._state.config else "R"
        self._status_label.setText("Export en cours...")
        self._export_worker = ExportWorker(result, path, symbol, self)
        self._export_worker.finished.connect(self._on_export_finished)
        self._export_worker.error.connect(self._on_export_error)
        self._update_buttons()
        self._export_worker.start()

    def _on_export_finished(self, xlsx_path: str) -> None:
        self._export_worker = None
        self._update_buttons()
        self._status_label.setText(f"Export terminé : {xlsx_path}")

    def _on_export_error(self, msg: str) -> None:
        self._export_worker = None
        self._update_buttons()
        self._status_label.setText("")
        QMessageBox.critical(self, "Erreur export", msg)
