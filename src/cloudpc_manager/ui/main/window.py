from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime

from PySide6.QtCore import QSettings, QSize
from PySide6.QtGui import QAction, QCloseEvent
from PySide6.QtWidgets import QLabel, QMainWindow, QStatusBar, QToolBar, QWidget

from cloudpc_manager.auth import AuthManager
from cloudpc_manager.bootstrap import build_services, initialize_domain_services
from cloudpc_manager.config import Settings, SettingsManager
from cloudpc_manager.graph.errors import AuthenticationError
from cloudpc_manager.data import CloudPC
from cloudpc_manager.services import (
    CloudPCService,
    RefreshEvent,
    ServiceErrorEvent,
    ServiceRegistry,
)
from cloudpc_manager.ui.cloud_pcs import CloudPCsWidget
from cloudpc_manager.ui.components import show_exception_dialog
from cloudpc_manager.ui.settings import SettingsDialog
from cloudpc_manager.utils import get_logger
from cloudpc_manager.utils.asyncio import AsyncBridge


logger = get_logger(__name__)

STATUS_TIMEOUT_MS = 6000


class MainWindow(QMainWindow):
    """Primary window: sign-in toolbar above the Cloud PC list."""

    def __init__(
        self,
        auth: AuthManager,
        *,
        settings_manager: SettingsManager | None = None,
        services: ServiceRegistry | None = None,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._auth = auth
        self._settings_manager = settings_manager or SettingsManager()
        self._settings: Settings = self._settings_manager.load()
        self._services = services or build_services()
        self._bridge = AsyncBridge()
        self._bridge.task_completed.connect(self._handle_task_completed)
        self._settings_store = QSettings("CloudPCManager", "CloudPCManagerApp")
        self._user_label = QLabel("Not signed in")
        self._service_subscriptions: list[Callable[[], None]] = []

        self._cloud_pcs = CloudPCsWidget(self._services, parent=self)
        self._cloud_pcs.status_message.connect(self._show_status)

        self._configure_window()
        self._build_toolbar()
        self.setCentralWidget(self._cloud_pcs)
        self._restore_window_preferences()
        self._update_auth_actions()
        self._auto_initialize_services_if_configured()

    @property
    def cloud_pcs_widget(self) -> CloudPCsWidget:
        return self._cloud_pcs

    # ------------------------------------------------------------------ Setup

    def _configure_window(self) -> None:
        self.setWindowTitle("Cloud PC Manager")
        self.resize(1200, 760)
        self.setMinimumSize(QSize(900, 540))
        status = QStatusBar()
        status.setObjectName("MainStatusBar")
        status.setSizeGripEnabled(False)
        status.showMessage("Ready")
        status.addPermanentWidget(self._user_label)
        self.setStatusBar(status)

    def _build_toolbar(self) -> None:
        toolbar = QToolBar("Session")
        toolbar.setMovable(False)
        self._sign_in_action = QAction("Sign in", self)
        self._sign_in_action.triggered.connect(self._handle_sign_in)
        self._sign_out_action = QAction("Sign out", self)
        self._sign_out_action.triggered.connect(self._handle_sign_out)
        self._settings_action = QAction("Tenant settings…", self)
        self._settings_action.triggered.connect(self._handle_settings)
        toolbar.addAction(self._sign_in_action)
        toolbar.addAction(self._sign_out_action)
        toolbar.addSeparator()
        toolbar.addAction(self._settings_action)
        self.addToolBar(toolbar)

    def _restore_window_preferences(self) -> None:
        geometry = self._settings_store.value("window/geometry")
        if isinstance(geometry, (bytes, bytearray)):
            self.restoreGeometry(geometry)

    def _persist_window_state(self) -> None:
        self._settings_store.setValue("window/geometry", self.saveGeometry())

    # ---------------------------------------------------------------- Session

    def _auto_initialize_services_if_configured(self) -> None:
        """Reuse a cached account on startup without prompting."""

        if not self._settings.client_id:
            self._show_status("Open Tenant settings to configure the app registration.")
            return
        if not self._settings.token_cache_path.exists():
            logger.debug(
                "No token cache found, skipping auto sign-in",
                path=str(self._settings.token_cache_path),
            )
            return
        self._bridge.run_coroutine(self._restore_session())

    async def _restore_session(self) -> None:
        try:
            self._auth.configure(self._settings)
            await asyncio.to_thread(self._auth.acquire_token_sync)
        except AuthenticationError as exc:
            logger.info("Cached session unavailable", error=str(exc))
            self._show_status("Sign in to load Cloud PCs.")
            return
        await self._connect_services()

    def _handle_sign_in(self) -> None:
        self._bridge.run_coroutine(self._sign_in())

    async def _sign_in(self) -> None:
        self._sign_in_action.setEnabled(False)
        try:
            self._auth.configure(self._settings)
            await self._auth.sign_in_interactive()
        except AuthenticationError as exc:
            show_exception_dialog(self, "Sign-in failed", exc)
            return
        finally:
            self._update_auth_actions()
        await self._connect_services()

    async def _connect_services(self) -> None:
        await self._services.close()
        self._services = initialize_domain_services(self._auth, self._settings)
        self._cloud_pcs.set_service(self._services.cloud_pcs)
        self._watch_service(self._services.cloud_pcs)
        self._update_auth_actions()
        missing = self._auth.missing_scopes()
        if missing:
            self._show_status(f"Token is missing scopes: {', '.join(missing)}")
        self._cloud_pcs.start_refresh()

    def _handle_sign_out(self) -> None:
        self._bridge.run_coroutine(self._sign_out())

    async def _sign_out(self) -> None:
        if self._auth.is_configured:
            await self._auth.sign_out()
        await self._services.close()
        self._services.cloud_pcs = None
        self._watch_service(None)
        self._cloud_pcs.set_service(None)
        self._update_auth_actions()
        self._show_status("Signed out.")

    def _watch_service(self, service: CloudPCService | None) -> None:
        while self._service_subscriptions:
            self._service_subscriptions.pop()()
        if service is None:
            return
        self._service_subscriptions = [
            service.refreshed.subscribe(self._handle_service_refreshed),
            service.errors.subscribe(self._handle_service_error),
        ]

    def _handle_service_refreshed(self, event: RefreshEvent[list[CloudPC]]) -> None:
        loaded_at = datetime.now().strftime("%H:%M")
        self._show_status(f"Loaded {len(event.items):,} Cloud PCs at {loaded_at}.")

    def _handle_service_error(self, event: ServiceErrorEvent) -> None:
        operation = "list" if event.operation == "list" else "end grace period"
        self._show_status(f"Microsoft Graph {operation} request failed.")

    def _handle_settings(self) -> None:
        dialog = SettingsDialog(self._settings_manager, parent=self)
        if dialog.exec():
            self._settings = dialog.settings
            self._show_status("Tenant settings saved. Sign in to apply them.")

    def _update_auth_actions(self) -> None:
        user = self._auth.current_user()
        signed_in = self._cloud_pcs.controller.has_service
        self._sign_in_action.setEnabled(not signed_in)
        self._sign_out_action.setEnabled(signed_in)
        if signed_in and user is not None:
            self._user_label.setText(user.username or user.display_name or "Signed in")
        else:
            self._user_label.setText("Not signed in")

    # --------------------------------------------------------------- Helpers

    def _show_status(self, message: str) -> None:
        self.statusBar().showMessage(message, STATUS_TIMEOUT_MS)

    def _handle_task_completed(self, _result: object, error: object) -> None:
        if isinstance(error, Exception):
            show_exception_dialog(self, "Unexpected error", error)

    def closeEvent(self, event: QCloseEvent) -> None:  # type: ignore[override]
        self._persist_window_state()
        self._watch_service(None)
        self._cloud_pcs.dispose()
        super().closeEvent(event)

    async def shutdown(self) -> None:
        """Release the Graph HTTP client; awaited after the event loop stops."""
        await self._services.close()


__all__ = ["MainWindow"]
