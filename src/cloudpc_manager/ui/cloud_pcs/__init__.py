"""Cloud PC list, grace period actions and CSV export."""

from .controller import (
    CloudPCController,
    CloudPCViewState,
    ControllerErrorEvent,
    DeprovisionOutcome,
)
from .models import CloudPCTableModel
from .widgets import CloudPCsWidget

__all__ = [
    "CloudPCController",
    "CloudPCTableModel",
    "CloudPCViewState",
    "CloudPCsWidget",
    "ControllerErrorEvent",
    "DeprovisionOutcome",
]
