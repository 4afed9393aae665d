from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any, TypeVar

from cluster_personas.selection import token_to_dict

# Reserved persona id of the overflow bucket, shared with the renderer.
OTHER_PERSONA_ID = "__other__"

TRANSPARENT_PROPERTY_COLOR = "rgba(0,186,211,0)"

RecordT = TypeVar("RecordT")
ValueT = TypeVar("ValueT")


def _record_id(record: Any) -> str:
    if isinstance(record, Mapping):
        return str(record["id"])
    return str(record.id)


def convert_to_lookup(
    records: Iterable[RecordT] | None,
    transform: Callable[[RecordT], ValueT],
) -> dict[str, ValueT]:
    """Key transformed records by their ``id``; later duplicates overwrite earlier ones."""
    lookup: dict[str, ValueT] = {}
    for record in records or ():
        lookup[_record_id(record)] = transform(record)
    return lookup


def _jsonable(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    return value


@dataclass(frozen=True)
class EntityRef:
    id: str
    name: str
    image_url: tuple[str, ...] = ()
    background_color: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "imageUrl": list(self.image_url),
            "backgroundColor": _jsonable(self.background_color),
        }


@dataclass(frozen=True)
class PersonaProperty:
    entity_ref_id: str
    count: int
    formatted_count: str | None = None
    is_primary: bool = False
    color: str = TRANSPARENT_PROPERTY_COLOR

    def to_dict(self) -> dict[str, Any]:
        return {
            "entityRefId": self.entity_ref_id,
            "count": self.count,
            "formattedCount": self.formatted_count,
            "isPrimary": self.is_primary,
            "color": self.color,
        }


@dataclass(frozen=True)
class PersonaAggregate:
    id: str
    properties: tuple[PersonaProperty, ...]
    total_count: int
    selection: tuple[Any, ...]
    image_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "properties": [prop.to_dict() for prop in self.properties],
            "imageUrl": self.image_url,
            "totalCount": self.total_count,
            "selection": [token_to_dict(token) for token in self.selection],
        }


@dataclass(frozen=True)
class Link:
    source: str
    target: str
    weight: float | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"source": self.source, "target": self.target}
        if self.weight is not None:
            payload["weight"] = self.weight
        return payload


@dataclass(frozen=True)
class OtherAggregate:
    count: int = 0
    persona_ids: tuple[str, ...] = ()
    selection: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "metadata": {
                "selection": None if self.selection is None else [token_to_dict(self.selection)],
                "personaIds": list(self.persona_ids),
            },
        }


@dataclass(frozen=True)
class Bar:
    count: float
    color: str

    def to_dict(self) -> dict[str, Any]:
        return {"color": self.color, "count": self.count}


@dataclass(frozen=True)
class SubSelectionEntry:
    bars: tuple[Bar, ...]
    compute_percentages: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "computePercentages": self.compute_percentages,
            "bars": [bar.to_dict() for bar in self.bars],
        }


SubSelection = dict[str, SubSelectionEntry]


def sub_selection_to_dict(sub_selection: SubSelection | None) -> dict[str, Any] | None:
    if sub_selection is None:
        return None
    return {persona_id: entry.to_dict() for persona_id, entry in sub_selection.items()}


@dataclass(frozen=True)
class PersonasData:
    entity_refs: dict[str, EntityRef]
    personas: dict[str, PersonaAggregate]
    links: tuple[Link, ...] = ()
    other: OtherAggregate = field(default_factory=OtherAggregate)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entityRefs": {key: ref.to_dict() for key, ref in self.entity_refs.items()},
            "aggregates": {
                "personas": {key: persona.to_dict() for key, persona in self.personas.items()},
                "links": [link.to_dict() for link in self.links],
                "other": self.other.to_dict(),
            },
        }


@dataclass(frozen=True)
class ConversionResult:
    data: PersonasData
    sub_selection: SubSelection | None
    has_links: bool
    has_buckets: bool
    layout: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": self.data.to_dict(),
            "subSelection": sub_selection_to_dict(self.sub_selection),
            "layout": self.layout,
            "hasLinks": self.has_links,
            "hasBuckets": self.has_buckets,
        }
