from __future__ import annotations

import asyncio
import sys

from PySide6.QtWidgets import QApplication
from qasync import QEventLoop

from cloudpc_manager.auth import AuthManager
from cloudpc_manager.config import SettingsManager
from cloudpc_manager.ui import MainWindow
from cloudpc_manager.utils import configure_logging, get_logger


def main() -> None:
    log_path = configure_logging()
    logger = get_logger(__name__)
    logger.info("Starting Cloud PC Manager", log_path=str(log_path))

    app = QApplication(sys.argv)
    app.setApplicationName("Cloud PC Manager")
    loop = QEventLoop(app)
    asyncio.set_event_loop(loop)

    window = MainWindow(AuthManager(), settings_manager=SettingsManager())
    window.show()

    app.aboutToQuit.connect(loop.stop)

    with loop:
        try:
            loop.run_forever()
        except KeyboardInterrupt:
            logger.info("Application interrupted by user")
        finally:
            loop.run_until_complete(window.shutdown())
            logger.info("Cloud PC Manager stopped")
