from __future__ import annotations

from typing import Iterable, Iterator

from cloudpc_manager.data.models import CloudPC


def _searchable_fields(cloud_pc: CloudPC) -> tuple[str | None, ...]:
    return (
        cloud_pc.name,
        cloud_pc.user_principal_name,
        cloud_pc.status,
        cloud_pc.service_plan_name,
    )


def matches_query(cloud_pc: CloudPC, query_text: str) -> bool:
    """Case-insensitive substring match over name, user, status and plan."""

    needle = query_text.casefold()
    return any(
        needle in value.casefold() for value in _searchable_fields(cloud_pc) if value
    )


class CloudPCStore:
    """In-memory holder for the most recently fetched Cloud PC collection."""

    def __init__(self, records: Iterable[CloudPC] | None = None) -> None:
        self._records: tuple[CloudPC, ...] = tuple(records or ())

    def replace(self, records: Iterable[CloudPC]) -> None:
        # A failing iterable must leave the previous set intact.
        snapshot = tuple(records)
        self._records = snapshot

    def all(self) -> list[CloudPC]:
        return list(self._records)

    def filtered(self, query_text: str | None) -> list[CloudPC]:
        if not query_text:
            return list(self._records)
        return [record for record in self._records if matches_query(record, query_text)]

    def grace_count(self) -> int:
        return sum(1 for record in self._records if record.is_in_grace_period)

    def get(self, cloud_pc_id: str) -> CloudPC | None:
        for record in self._records:
            if record.id == cloud_pc_id:
                return record
        return None

    @property
    def is_empty(self) -> bool:
        return not self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[CloudPC]:
        return iter(self._records)


__all__ = ["CloudPCStore", "matches_query"]
