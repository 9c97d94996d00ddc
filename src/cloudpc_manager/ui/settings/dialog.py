from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QGroupBox,
    QLabel,
    QLineEdit,
    QPlainTextEdit,
    QVBoxLayout,
    QWidget,
)

from cloudpc_manager.config import Settings, SettingsManager
from cloudpc_manager.utils.logging import get_logger


logger = get_logger(__name__)


class SettingsDialog(QDialog):
    """Edit the tenant and app registration used for sign-in."""

    def __init__(
        self,
        settings_manager: SettingsManager | None = None,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("Cloud PC Manager – Tenant Configuration")
        self._settings_manager = settings_manager or SettingsManager()
        self._settings = self._settings_manager.load()

        layout = QVBoxLayout(self)

        help_label = QLabel(
            "Provide your Entra ID tenant and app registration. The app registration "
            "**must be configured as 'Mobile and desktop applications'** with a "
            "`http://localhost` redirect URI and delegated "
            "`CloudPC.ReadWrite.All` consent."
        )
        help_label.setWordWrap(True)
        help_label.setTextFormat(Qt.TextFormat.MarkdownText)
        layout.addWidget(help_label)

        group = QGroupBox("App registration")
        form = QFormLayout(group)
        self.tenant_input = QLineEdit(self._settings.tenant_id or "")
        self.tenant_input.setPlaceholderText("directory (tenant) ID, defaults to organizations")
        self.client_input = QLineEdit(self._settings.client_id or "")
        self.client_input.setPlaceholderText("application (client) ID – GUID")
        self.authority_input = QLineEdit(self._settings.authority or "")
        self.authority_input.setPlaceholderText(
            "Optional override, defaults to https://login.microsoftonline.com/<tenant>"
        )
        form.addRow("Tenant ID", self.tenant_input)
        form.addRow("Client ID", self.client_input)
        form.addRow("Authority", self.authority_input)
        layout.addWidget(group)

        scopes = QPlainTextEdit("\n".join(self._settings.configured_scopes()))
        scopes.setReadOnly(True)
        scopes.setMaximumHeight(80)
        layout.addWidget(QLabel("Requested Microsoft Graph scopes"))
        layout.addWidget(scopes)

        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Save | QDialogButtonBox.StandardButton.Cancel
        )
        buttons.accepted.connect(self._handle_save)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    @property
    def settings(self) -> Settings:
        return self._settings

    def _handle_save(self) -> None:
        self._settings.tenant_id = self.tenant_input.text().strip() or None
        self._settings.client_id = self.client_input.text().strip() or None
        self._settings.authority = self.authority_input.text().strip() or None
        self._settings_manager.save(self._settings)
        logger.info("Saved tenant settings", tenant=self._settings.tenant_id)
        self.accept()


__all__ = ["SettingsDialog"]
