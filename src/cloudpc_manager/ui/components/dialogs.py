from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Sequence

from PySide6.QtWidgets import QFileDialog, QMessageBox, QWidget

from cloudpc_manager.utils.errors import ErrorSeverity, describe_exception
from cloudpc_manager.utils.logging import log_file_path


def show_error_dialog(
    parent: QWidget | None,
    title: str,
    message: str,
    *,
    informative: str | None = None,
    details: str | None = None,
    icon: QMessageBox.Icon = QMessageBox.Icon.Critical,
) -> None:
    dialog = QMessageBox(
        icon,
        title,
        message,
        QMessageBox.StandardButton.Close,
        parent,
    )
    if informative:
        dialog.setInformativeText(informative)
    if details:
        dialog.setDetailedText(details)
    dialog.exec()


def show_exception_dialog(
    parent: QWidget | None, title: str, error: BaseException
) -> None:
    """Describe ``error`` for the operator in a modal message box."""

    descriptor = describe_exception(error)
    informative = descriptor.detail
    if descriptor.suggestion:
        informative = f"{informative}\n\n{descriptor.suggestion}"
    details = f"Log file: {log_file_path()}"
    if descriptor.help_url:
        details = f"{descriptor.help_url}\n{details}"
    show_error_dialog(
        parent,
        title,
        descriptor.headline,
        informative=informative,
        details=details,
        icon=(
            QMessageBox.Icon.Warning
            if descriptor.severity is ErrorSeverity.WARNING
            else QMessageBox.Icon.Critical
        ),
    )


def show_info_dialog(
    parent: QWidget | None,
    title: str,
    message: str,
    *,
    informative: str | None = None,
) -> None:
    dialog = QMessageBox(
        QMessageBox.Icon.Information,
        title,
        message,
        QMessageBox.StandardButton.Ok,
        parent,
    )
    if informative:
        dialog.setInformativeText(informative)
    dialog.exec()


def _confirmation_box(
    parent: QWidget | None,
    title: str,
    question: str,
    *,
    informative: str | None,
    ok_label: str,
    cancel_label: str,
) -> tuple[QMessageBox, object]:
    box = QMessageBox(parent)
    box.setWindowTitle(title)
    box.setText(question)
    if informative:
        box.setInformativeText(informative)
    box.setIcon(QMessageBox.Icon.Warning)
    ok_button = box.addButton(ok_label, QMessageBox.ButtonRole.AcceptRole)
    cancel_button = box.addButton(cancel_label, QMessageBox.ButtonRole.RejectRole)
    box.setDefaultButton(cancel_button)
    return box, ok_button


async def ask_confirmation_async(
    parent: QWidget | None,
    title: str,
    question: str,
    *,
    informative: str | None = None,
    ok_label: str = "Continue",
    cancel_label: str = "Cancel",
) -> bool:
    """Window-modal confirmation that awaits the answer without nesting event loops."""

    box, ok_button = _confirmation_box(
        parent,
        title,
        question,
        informative=informative,
        ok_label=ok_label,
        cancel_label=cancel_label,
    )
    answer: asyncio.Future[bool] = asyncio.get_event_loop().create_future()

    def _finished(_: int) -> None:
        if not answer.done():
            answer.set_result(box.clickedButton() is ok_button)

    box.finished.connect(_finished)
    box.open()
    try:
        return await answer
    finally:
        box.deleteLater()


def save_file_dialog(
    parent: QWidget | None,
    *,
    caption: str,
    directory: str | Path | None = None,
    default_suffix: str | None = None,
    name_filters: Sequence[str] | None = None,
) -> Path | None:
    dialog = QFileDialog(parent, caption)
    dialog.setAcceptMode(QFileDialog.AcceptMode.AcceptSave)
    if directory:
        dialog.selectFile(str(directory))
    if default_suffix:
        dialog.setDefaultSuffix(default_suffix)
    if name_filters:
        dialog.setNameFilters(list(name_filters))
    if dialog.exec():
        selected = dialog.selectedFiles()
        if selected:
            return Path(selected[0])
    return None


__all__ = [
    "show_error_dialog",
    "show_exception_dialog",
    "show_info_dialog",
    "ask_confirmation_async",
    "save_file_dialog",
]
