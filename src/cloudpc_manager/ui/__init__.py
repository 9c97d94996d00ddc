"""UI package for the Cloud PC Manager application."""

from .cloud_pcs import CloudPCsWidget
from .main import MainWindow
from .settings import SettingsDialog

__all__ = ["CloudPCsWidget", "MainWindow", "SettingsDialog"]
