from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Awaitable

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QGuiApplication, QKeySequence, QShortcut
from PySide6.QtWidgets import (
    QAbstractItemView,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QPushButton,
    QTableView,
    QVBoxLayout,
    QWidget,
)

from cloudpc_manager.data import CloudPC
from cloudpc_manager.services import CloudPCService, ServiceRegistry
from cloudpc_manager.ui.components import (
    ask_confirmation_async,
    save_file_dialog,
    show_exception_dialog,
    show_info_dialog,
)
from cloudpc_manager.utils.asyncio import AsyncBridge
from cloudpc_manager.utils.formatters import format_grace_end

from .controller import (
    CloudPCController,
    CloudPCViewState,
    ControllerErrorEvent,
    DeprovisionOutcome,
)
from .models import CloudPCTableModel


_ERROR_TITLES = {
    "refresh": "Could not load Cloud PCs",
    "deprovision": "Could not end grace period",
    "export": "Could not export Cloud PCs",
}


class CloudPCsWidget(QWidget):
    """Cloud PC list with search, deprovision and export actions."""

    status_message = Signal(str)

    def __init__(
        self,
        services: ServiceRegistry,
        *,
        bridge: AsyncBridge | None = None,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._controller = CloudPCController(
            services.cloud_pcs,
            confirm=self._confirm_deprovision,
            exporter=services.export,
        )
        self._bridge = bridge or AsyncBridge()
        self._pending = 0
        self._subscriptions: list[Callable[[], None]] = []

        self._model = CloudPCTableModel()
        self._search_input = QLineEdit()
        self._refresh_button = QPushButton("Refresh")
        self._deprovision_button = QPushButton("End grace period…")
        self._export_button = QPushButton("Export CSV…")
        self._copy_button = QPushButton("Copy ID")
        self._table = QTableView()
        self._summary_label = QLabel()

        self._build_layout()
        self._connect_signals()
        self._apply_state(self._controller.state())

    @property
    def controller(self) -> CloudPCController:
        return self._controller

    @property
    def model(self) -> CloudPCTableModel:
        return self._model

    def set_service(self, service: CloudPCService | None) -> None:
        self._controller.set_service(service)
        self._update_action_buttons()

    def start_refresh(self) -> None:
        self._run(self._controller.refresh())

    def focus_search(self) -> None:
        self._search_input.setFocus(Qt.FocusReason.ShortcutFocusReason)
        self._search_input.selectAll()

    # ----------------------------------------------------------------- Layout

    def _build_layout(self) -> None:
        self._search_input.setPlaceholderText("Filter by name, user, status or plan")
        self._search_input.setClearButtonEnabled(True)

        self._deprovision_button.setToolTip(
            "Deprovision the selected Cloud PC now (grace period only)"
        )
        self._export_button.setToolTip("Export all Cloud PCs to a CSV file")

        toolbar = QHBoxLayout()
        toolbar.addWidget(self._search_input, stretch=1)
        toolbar.addWidget(self._refresh_button)
        toolbar.addWidget(self._deprovision_button)
        toolbar.addWidget(self._copy_button)
        toolbar.addWidget(self._export_button)

        self._table.setModel(self._model)
        self._table.setSelectionBehavior(QAbstractItemView.SelectionBehavior.SelectRows)
        self._table.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        self._table.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
        self._table.setAlternatingRowColors(False)
        self._table.verticalHeader().setVisible(False)
        self._table.horizontalHeader().setSectionResizeMode(
            QHeaderView.ResizeMode.Interactive
        )
        self._table.horizontalHeader().setStretchLastSection(True)

        layout = QVBoxLayout(self)
        layout.addLayout(toolbar)
        layout.addWidget(self._table, stretch=1)
        layout.addWidget(self._summary_label)

    def _connect_signals(self) -> None:
        self._search_input.textChanged.connect(self._handle_search_changed)
        self._refresh_button.clicked.connect(self.start_refresh)
        self._deprovision_button.clicked.connect(self._handle_deprovision_clicked)
        self._export_button.clicked.connect(self._handle_export_clicked)
        self._copy_button.clicked.connect(self._handle_copy_clicked)
        self._table.selectionModel().selectionChanged.connect(
            lambda *_: self._update_action_buttons()
        )
        self._bridge.task_completed.connect(self._handle_task_completed)

        self._subscriptions.append(self._controller.changed.subscribe(self._apply_state))
        self._subscriptions.append(self._controller.errors.subscribe(self._handle_error))

        refresh_shortcut = QShortcut(QKeySequence(QKeySequence.StandardKey.Refresh), self)
        refresh_shortcut.activated.connect(self.start_refresh)
        find_shortcut = QShortcut(QKeySequence(QKeySequence.StandardKey.Find), self)
        find_shortcut.activated.connect(self.focus_search)

    # ----------------------------------------------------------------- State

    def _apply_state(self, state: CloudPCViewState) -> None:
        selected = self._selected_cloud_pc()
        self._model.set_cloud_pcs(state.visible)
        if self._search_input.text() != state.filter_text:
            self._search_input.blockSignals(True)
            self._search_input.setText(state.filter_text)
            self._search_input.blockSignals(False)
        if selected is not None:
            self._reselect(selected.id)
        self._summary_label.setText(self._summary_text(state))
        self._update_action_buttons()

    @staticmethod
    def _summary_text(state: CloudPCViewState) -> str:
        text = f"{state.total:,} Cloud PCs • {state.grace_count:,} in grace period"
        if state.filter_active:
            text += f" • showing {len(state.visible):,}"
        return text

    def _update_action_buttons(self) -> None:
        busy = self._pending > 0
        selected = self._selected_cloud_pc()
        self._refresh_button.setEnabled(not busy)
        self._export_button.setEnabled(not busy and len(self._controller.store) > 0)
        self._copy_button.setEnabled(selected is not None)
        self._deprovision_button.setEnabled(
            not busy
            and selected is not None
            and self._controller.can_deprovision(selected.id)
        )

    def _selected_cloud_pc(self) -> CloudPC | None:
        selection = self._table.selectionModel()
        if selection is None:
            return None
        rows = selection.selectedRows()
        if not rows:
            return None
        return self._model.cloud_pc_at(rows[0].row())

    def _reselect(self, cloud_pc_id: str) -> None:
        row = self._model.row_for_id(cloud_pc_id)
        if row is not None:
            self._table.selectRow(row)

    # ----------------------------------------------------------------- Actions

    def _run(self, coro: Awaitable[object]) -> None:
        self._pending += 1
        self._update_action_buttons()
        self._bridge.run_coroutine(coro)

    def _handle_task_completed(self, _result: object, error: object) -> None:
        self._pending = max(0, self._pending - 1)
        self._update_action_buttons()
        if isinstance(error, Exception):
            show_exception_dialog(self, "Unexpected error", error)

    def _handle_search_changed(self, text: str) -> None:
        self._run(self._controller.set_filter(text))

    def _handle_deprovision_clicked(self) -> None:
        selected = self._selected_cloud_pc()
        if selected is None:
            return
        self._run(self._deprovision_async(selected))

    async def _deprovision_async(self, cloud_pc: CloudPC) -> None:
        outcome = await self._controller.deprovision(cloud_pc.id)
        if outcome is DeprovisionOutcome.COMPLETED:
            self.status_message.emit(f"Grace period ended for {cloud_pc.name}.")
        elif outcome is DeprovisionOutcome.REJECTED:
            self.status_message.emit(f"{cloud_pc.name} is not in grace period.")

    def _confirm_deprovision(self, cloud_pc: CloudPC) -> Awaitable[bool]:
        grace_end = format_grace_end(cloud_pc.grace_period_end_date_time, empty="unknown")
        return ask_confirmation_async(
            self,
            "End grace period",
            f"Deprovision {cloud_pc.name} now?",
            informative=(
                f"User: {cloud_pc.user_principal_name or 'unassigned'}\n"
                f"Grace period ends: {grace_end}\n\n"
                "The Cloud PC and its data are permanently removed."
            ),
            ok_label="Deprovision",
        )

    def _handle_export_clicked(self) -> None:
        path = save_file_dialog(
            self,
            caption="Export Cloud PCs",
            directory=Path.home() / "cloud-pcs.csv",
            default_suffix="csv",
            name_filters=["CSV Files (*.csv)"],
        )
        if path is None:
            return
        written = self._controller.export_csv(path)
        if written is None:
            return
        count = len(self._controller.store)
        self.status_message.emit(f"Exported {count:,} Cloud PCs.")
        show_info_dialog(
            self,
            "Export complete",
            f"Exported {count:,} Cloud PCs.",
            informative=str(written),
        )

    def _handle_copy_clicked(self) -> None:
        selected = self._selected_cloud_pc()
        if selected is None:
            return
        QGuiApplication.clipboard().setText(selected.id)
        self.status_message.emit(f"Copied ID of {selected.name}.")

    def _handle_error(self, event: ControllerErrorEvent) -> None:
        title = _ERROR_TITLES.get(event.operation, "Operation failed")
        show_exception_dialog(self, title, event.error)

    def dispose(self) -> None:
        while self._subscriptions:
            self._subscriptions.pop()()


__all__ = ["CloudPCsWidget"]
