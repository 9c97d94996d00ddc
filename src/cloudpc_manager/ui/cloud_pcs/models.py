from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, List, Sequence

from PySide6.QtCore import QAbstractTableModel, QModelIndex, Qt
from PySide6.QtGui import QBrush, QColor, QFont

from cloudpc_manager.data import CloudPC
from cloudpc_manager.utils.formatters import format_grace_end, format_optional


GRACE_ROW_COLOR = QColor("#fff4ce")
GRACE_TEXT_COLOR = QColor("#8a5300")


@dataclass(slots=True)
class CloudPCColumn:
    key: str
    header: str
    accessor: Callable[[CloudPC], str | None]
    alignment: Qt.AlignmentFlag = Qt.AlignmentFlag.AlignLeft


class CloudPCTableModel(QAbstractTableModel):
    """Table model projecting Cloud PCs, highlighting rows in grace period."""

    def __init__(self, cloud_pcs: Sequence[CloudPC] | None = None) -> None:
        super().__init__()
        self._columns: List[CloudPCColumn] = [
            CloudPCColumn("name", "Name", lambda pc: pc.name),
            CloudPCColumn("user", "User", lambda pc: pc.user_principal_name),
            CloudPCColumn("status", "Status", lambda pc: pc.status),
            CloudPCColumn(
                "service_plan", "Service Plan", lambda pc: pc.service_plan_name
            ),
            CloudPCColumn(
                "grace_end",
                "Grace Period End",
                lambda pc: format_grace_end(pc.grace_period_end_date_time) or None,
            ),
        ]
        self._cloud_pcs: list[CloudPC] = list(cloud_pcs or [])

    # ----------------------------------------------------------------- Qt API

    def rowCount(self, parent: QModelIndex | None = None) -> int:  # noqa: N802
        if parent and parent.isValid():
            return 0
        return len(self._cloud_pcs)

    def columnCount(self, parent: QModelIndex | None = None) -> int:  # noqa: N802
        if parent and parent.isValid():
            return 0
        return len(self._columns)

    def data(self, index: QModelIndex, role: int = Qt.ItemDataRole.DisplayRole):  # noqa: ANN001
        if not index.isValid():
            return None
        row = index.row()
        if row < 0 or row >= len(self._cloud_pcs):
            return None

        cloud_pc = self._cloud_pcs[row]
        column = self._columns[index.column()]

        if role == Qt.ItemDataRole.DisplayRole:
            return format_optional(column.accessor(cloud_pc))
        if role == Qt.ItemDataRole.UserRole:
            return cloud_pc
        if role == Qt.ItemDataRole.TextAlignmentRole:
            return int(column.alignment | Qt.AlignmentFlag.AlignVCenter)
        if cloud_pc.is_in_grace_period:
            if role == Qt.ItemDataRole.BackgroundRole:
                return QBrush(GRACE_ROW_COLOR)
            if role == Qt.ItemDataRole.ForegroundRole:
                return QBrush(GRACE_TEXT_COLOR)
            if role == Qt.ItemDataRole.FontRole and column.key == "status":
                font = QFont()
                font.setBold(True)
                return font
        if role == Qt.ItemDataRole.ToolTipRole and cloud_pc.is_in_grace_period:
            return "In grace period: can be deprovisioned"
        return None

    def headerData(  # noqa: N802
        self,
        section: int,
        orientation: Qt.Orientation,
        role: int = Qt.ItemDataRole.DisplayRole,
    ) -> object:
        if orientation != Qt.Orientation.Horizontal:
            return super().headerData(section, orientation, role)
        if role != Qt.ItemDataRole.DisplayRole:
            return None
        if section < 0 or section >= len(self._columns):
            return None
        return self._columns[section].header

    # ----------------------------------------------------------------- Helpers

    def set_cloud_pcs(self, cloud_pcs: Iterable[CloudPC]) -> None:
        self.beginResetModel()
        self._cloud_pcs = list(cloud_pcs)
        self.endResetModel()

    def cloud_pc_at(self, row: int) -> CloudPC | None:
        if 0 <= row < len(self._cloud_pcs):
            return self._cloud_pcs[row]
        return None

    def row_for_id(self, cloud_pc_id: str) -> int | None:
        for row, cloud_pc in enumerate(self._cloud_pcs):
            if cloud_pc.id == cloud_pc_id:
                return row
        return None

    def column_index(self, key: str) -> int | None:
        for index, column in enumerate(self._columns):
            if column.key == key:
                return index
        return None


__all__ = ["CloudPCColumn", "CloudPCTableModel", "GRACE_ROW_COLOR"]
