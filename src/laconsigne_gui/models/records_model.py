"""QAbstractTableModel pour afficher le registre rapproché."""

from __future__ import annotations

from PySide6.QtCore import QAbstractTableModel, QModelIndex, QObject, Qt
from PySide6.QtGui import QBrush, QColor

from laconsigne.export import EXPORT_COLUMNS
from laconsigne.matching.schema import MatchedRecord
from laconsigne.table import RecordGroup, format_number, row_category

_ROW_COLORS = {
    "orphan": QColor(255, 224, 178),
    "unmatched": QColor(255, 205, 210),
}
_NUMERIC_COLUMNS = set(range(5, 11))


class RecordsModel(QAbstractTableModel):
    """Modèle Qt en lecture seule : une ligne par MatchedRecord, colonnes de l'export."""

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._rows: list[tuple[MatchedRecord, bool, bool]] = []  # (record, ligne détail, rapprochée)
        self._currency_symbol = "R"

    def set_records(self, records: list[MatchedRecord]) -> None:
        """Remplace les lignes et notifie la vue."""
        self.beginResetModel()
        self._rows = [(r, False, r.reconciled) for r in records]
        self.endResetModel()

    def set_groups(self, groups: list[RecordGroup]) -> None:
        """Affiche les synthèses suivies de leurs lignes détail."""
        self.beginResetModel()
        self._rows = []
        for g in groups:
            self._rows.append((g.record, False, g.reconciled))
            self._rows.extend((child, True, child.reconciled) for child in g.children)
        self.endResetModel()

    def set_currency_symbol(self, symbol: str) -> None:
        self._currency_symbol = symbol

    def record_at(self, row: int) -> MatchedRecord | None:
        if 0 <= row < len(self._rows):
            return self._rows[row][0]
        return None

    def rowCount(self, parent: QModelIndex = QModelIndex()) -> int:
        if parent.isValid():
            return 0
        return len(self._rows)

    def columnCount(self, parent: QModelIndex = QModelIndex()) -> int:
        if parent.isValid():
            return 0
        return len(EXPORT_COLUMNS)

    def _display(self, record: MatchedRecord, col: int, is_child: bool, reconciled: bool) -> str:
        values = [
            record.consign_number,
            record.supplier_ref,
            record.status.value,
            record.variety,
            record.carton_type or "-",
            format_number(record.cartons_sent),
            format_number(record.received),
            format_number(record.deviation_sent_received),
            format_number(record.sold_on_market),
            format_number(record.deviation_received_sold),
            format_number(record.total_value, "currency", currency_symbol=self._currency_symbol),
            "Yes" if reconciled else "No",
        ]
        text = values[col]
        if col == 0 and is_child:
            return f"    ↳ {text}"
        return text

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole):
        if not index.isValid():
            return None
        row, col = index.row(), index.column()
        if row < 0 or row >= len(self._rows) or col < 0 or col >= len(EXPORT_COLUMNS):
            return None
        record, is_child, reconciled = self._rows[row]
        if role == Qt.ItemDataRole.DisplayRole:
            return self._display(record, col, is_child, reconciled)
        if role == Qt.ItemDataRole.BackgroundRole:
            color = _ROW_COLORS.get(row_category(record))
            return QBrush(color) if color is not None else None
        if role == Qt.ItemDataRole.TextAlignmentRole and col in _NUMERIC_COLUMNS:
            return int(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)
        return None

    def headerData(
        self, section: int, orientation: Qt.Orientation, role: int = Qt.ItemDataRole.DisplayRole
    ) -> str | None:
        if role != Qt.ItemDataRole.DisplayRole:
            return None
        if orientation == Qt.Orientation.Horizontal:
            if section < len(EXPORT_COLUMNS):
                return EXPORT_COLUMNS[section]
        else:
            return str(section + 1)
        return None
