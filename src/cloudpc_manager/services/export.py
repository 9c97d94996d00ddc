from __future__ import annotations

import csv
from pathlib import Path
from typing import Callable, Iterable

from cloudpc_manager.data import CloudPC
from cloudpc_manager.utils.formatters import format_bool, format_grace_end
from cloudpc_manager.utils.logging import get_logger


logger = get_logger(__name__)


CLOUD_PC_COLUMNS: tuple[tuple[str, Callable[[CloudPC], str]], ...] = (
    ("Name", lambda pc: pc.name),
    ("User", lambda pc: pc.user_principal_name or ""),
    ("Service Plan", lambda pc: pc.service_plan_name or ""),
    ("Status", lambda pc: pc.status or ""),
    ("Grace Period End", lambda pc: format_grace_end(pc.grace_period_end_date_time)),
    ("In Grace Period", lambda pc: format_bool(pc.is_in_grace_period)),
)


class ExportService:
    """Write Cloud PC collections to CSV."""

    def export_cloud_pcs_csv(self, path: Path, cloud_pcs: Iterable[CloudPC]) -> Path:
        rows = [
            [accessor(cloud_pc) for _, accessor in CLOUD_PC_COLUMNS]
            for cloud_pc in cloud_pcs
        ]
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", newline="", encoding="utf-8") as handle:
            writer = csv.writer(handle)
            writer.writerow([header for header, _ in CLOUD_PC_COLUMNS])
            writer.writerows(rows)
        logger.info("Exported Cloud PCs CSV", path=str(path), count=len(rows))
        return path


__all__ = ["CLOUD_PC_COLUMNS", "ExportService"]
