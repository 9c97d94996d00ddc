from __future__ import annotations

from typing import Any, Mapping, Self

from pydantic import BaseModel, ConfigDict


class GraphResource(BaseModel):
    """Immutable snapshot of a Graph entity keyed by ``id``.

    Fields are populated from Graph's camelCase property names; properties the
    model does not declare are ignored.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: str

    @classmethod
    def from_graph(cls, payload: Mapping[str, Any]) -> Self:
        return cls.model_validate(dict(payload))
