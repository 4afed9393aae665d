from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class ColumnRole(str, Enum):
    GROUP_ID = "group_id"
    NAME = "name"
    COUNT = "count"
    BUCKET = "bucket"
    IMAGE_URL = "image_url"
    BACKGROUND_COLOR = "background_color"
    LINK_TARGET = "link_target"
    LINK_WEIGHT = "link_weight"


@dataclass(frozen=True)
class TableColumn:
    name: str
    roles: frozenset[str] = field(default_factory=frozenset)
    format: str | None = None

    def has_role(self, role: ColumnRole) -> bool:
        return role.value in self.roles


@dataclass(frozen=True)
class TableSnapshot:
    """One batch of rows as handed over by the data source.

    ``highlights`` is index-aligned with ``rows``; ``None`` means the batch
    carries no highlight data at all, while a ``None`` entry means the row is
    not highlighted.
    """

    columns: tuple[TableColumn, ...]
    rows: tuple[tuple[Any, ...], ...]
    highlights: tuple[float | None, ...] | None = None


@dataclass(frozen=True)
class ColumnRoleMap:
    group_id: int
    name: int
    count: int
    bucket: int | None = None
    image_urls: tuple[int, ...] = ()
    background_color: int | None = None
    link_target: int | None = None
    link_weight: int | None = None

    @property
    def has_links(self) -> bool:
        return self.link_target is not None

    @property
    def has_buckets(self) -> bool:
        return self.bucket is not None


def _first_index(columns: Sequence[TableColumn], role: ColumnRole) -> int | None:
    for index, column in enumerate(columns):
        if column.has_role(role):
            return index
    return None


def resolve_column_roles(columns: Sequence[TableColumn]) -> ColumnRoleMap | None:
    """Resolve role tags to column indices; ``None`` when the table is not convertible."""
    group_id = _first_index(columns, ColumnRole.GROUP_ID)
    name = _first_index(columns, ColumnRole.NAME)
    count = _first_index(columns, ColumnRole.COUNT)
    if group_id is None or name is None or count is None:
        return None

    return ColumnRoleMap(
        group_id=group_id,
        name=name,
        count=count,
        bucket=_first_index(columns, ColumnRole.BUCKET),
        image_urls=tuple(
            index for index, column in enumerate(columns) if column.has_role(ColumnRole.IMAGE_URL)
        ),
        background_color=_first_index(columns, ColumnRole.BACKGROUND_COLOR),
        link_target=_first_index(columns, ColumnRole.LINK_TARGET),
        link_weight=_first_index(columns, ColumnRole.LINK_WEIGHT),
    )


def cell(row: Sequence[Any], index: int | None) -> Any:
    if index is None or index < 0 or index >= len(row):
        return None
    return row[index]


def _padded_highlights(snapshot: TableSnapshot) -> Iterable[float | None]:
    if snapshot.highlights is None:
        return [None] * len(snapshot.rows)
    return snapshot.highlights


def merge_snapshots(previous: TableSnapshot, incoming: TableSnapshot) -> TableSnapshot:
    """Append ``incoming`` rows after ``previous`` rows, keeping highlights aligned."""
    highlights: tuple[float | None, ...] | None = None
    if previous.highlights is not None or incoming.highlights is not None:
        highlights = (*_padded_highlights(previous), *_padded_highlights(incoming))
    return replace(
        incoming,
        rows=(*previous.rows, *incoming.rows),
        highlights=highlights,
    )
