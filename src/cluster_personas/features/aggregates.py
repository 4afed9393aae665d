from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Any

import pandas as pd

from cluster_personas.colors import bar_palette
from cluster_personas.contracts import (
    TRANSPARENT_PROPERTY_COLOR,
    EntityRef,
    Link,
    PersonaAggregate,
    PersonaProperty,
)
from cluster_personas.io.schema import ColumnRoleMap, TableColumn, cell
from cluster_personas.preprocess.values import (
    apply_format,
    cell_text,
    collect_image_urls,
    format_name,
    make_ref_id,
    parse_count,
    parse_link_weight,
)
from cluster_personas.selection import DEFAULT_TOKEN_ALGEBRA, TokenAlgebra

LOGGER = logging.getLogger(__name__)

LINK_PAIR_SEPARATOR = "\x1f"


@dataclass(frozen=True)
class PersonaCount:
    id: str
    total_count: int
    selection: Any


@dataclass(frozen=True)
class RowAggregation:
    frame: pd.DataFrame
    persona_counts: tuple[PersonaCount, ...]
    links: tuple[Link, ...]


def _role_series(rows: Sequence[Sequence[Any]], index: int | None) -> pd.Series:
    return pd.Series([cell(row, index) for row in rows], dtype=object)


def build_reference_frame(rows: Sequence[Sequence[Any]], roles: ColumnRoleMap) -> pd.DataFrame:
    """One record per row that names a group, in row order."""
    group_raw = _role_series(rows, roles.group_id)
    frame = pd.DataFrame(
        {
            "row_index": range(len(rows)),
            "group_raw": group_raw,
            "group_id": group_raw.map(cell_text),
            "n": _role_series(rows, roles.count).map(parse_count).astype(object),
            "bucket": _role_series(rows, roles.bucket),
            "target_id": _role_series(rows, roles.link_target).map(cell_text),
            "link_weight": _role_series(rows, roles.link_weight).map(parse_link_weight),
        }
    )
    frame["ref_id"] = [
        make_ref_id(group_id, bucket, roles.has_buckets)
        for group_id, bucket in zip(frame["group_id"], frame["bucket"])
    ]
    return frame[frame["group_id"] != ""].reset_index(drop=True)


def build_persona_counts(
    frame: pd.DataFrame,
    id_column: TableColumn,
    tokens: TokenAlgebra = DEFAULT_TOKEN_ALGEBRA,
) -> tuple[PersonaCount, ...]:
    """Total count per group in first-encounter order, with each group's selection token."""
    if frame.empty:
        return ()
    totals = frame.groupby("group_id", sort=False)["n"].sum()
    first_raw = frame.drop_duplicates("group_id", keep="first").set_index("group_id")["group_raw"]
    return tuple(
        PersonaCount(
            id=str(group_id),
            total_count=int(total),
            selection=tokens.make(id_column, first_raw[group_id]),
        )
        for group_id, total in totals.items()
    )


def build_links(frame: pd.DataFrame) -> tuple[Link, ...]:
    """Undirected links; the first row mentioning a pair, in either direction, wins."""
    candidates = frame[(frame["target_id"] != "") & (frame["target_id"] != frame["group_id"])]
    if candidates.empty:
        return ()

    pair_keys = [
        LINK_PAIR_SEPARATOR.join(sorted(pair))
        for pair in zip(candidates["group_id"], candidates["target_id"])
    ]
    unique_pairs = candidates.assign(pair_key=pair_keys).drop_duplicates("pair_key", keep="first")
    return tuple(
        Link(
            source=source,
            target=target,
            weight=None if pd.isna(weight) else float(weight),
        )
        for source, target, weight in zip(
            unique_pairs["group_id"],
            unique_pairs["target_id"],
            unique_pairs["link_weight"],
        )
    )


def aggregate_rows(
    rows: Sequence[Sequence[Any]],
    columns: Sequence[TableColumn],
    roles: ColumnRoleMap,
    tokens: TokenAlgebra = DEFAULT_TOKEN_ALGEBRA,
) -> RowAggregation:
    frame = build_reference_frame(rows, roles)
    return RowAggregation(
        frame=frame,
        persona_counts=build_persona_counts(frame, columns[roles.group_id], tokens),
        links=build_links(frame),
    )


def _color_properties(
    properties: list[PersonaProperty],
    normal_color: str,
) -> list[PersonaProperty]:
    palette = bar_palette(normal_color, len(properties), is_selection=False)
    return [replace(prop, color=palette[index].css()) for index, prop in enumerate(properties)]


def build_persona_properties(
    members: pd.DataFrame,
    count_format: str | None,
    *,
    has_buckets: bool,
    normal_color: str,
) -> tuple[PersonaProperty, ...]:
    """Properties of one persona sorted by entity ref id; the first one is primary."""
    ref_totals = members.groupby("ref_id", sort=False)["n"].sum()
    properties = [
        PersonaProperty(
            entity_ref_id=str(ref_id),
            count=int(total),
            formatted_count=apply_format(int(total), count_format),
            color=TRANSPARENT_PROPERTY_COLOR,
        )
        for ref_id, total in sorted(ref_totals.items(), key=lambda item: str(item[0]))
    ]
    if not properties:
        return ()
    if has_buckets:
        properties = _color_properties(properties, normal_color)
    properties[0] = replace(properties[0], is_primary=True)
    return tuple(properties)


def build_entity_refs(
    members: pd.DataFrame,
    rows: Sequence[Sequence[Any]],
    columns: Sequence[TableColumn],
    roles: ColumnRoleMap,
) -> list[EntityRef]:
    """Descriptive fields of each entity ref come from its first row."""
    name_format = columns[roles.name].format
    first_rows = members.drop_duplicates("ref_id", keep="first")

    refs: list[EntityRef] = []
    for ref_id, row_index in zip(first_rows["ref_id"], first_rows["row_index"]):
        row = rows[int(row_index)]
        refs.append(
            EntityRef(
                id=str(ref_id),
                name=format_name(cell(row, roles.name), name_format),
                image_url=collect_image_urls(row, roles.image_urls),
                background_color=cell(row, roles.background_color),
            )
        )
    return refs


def build_personas(
    aggregation: RowAggregation,
    kept: Sequence[PersonaCount],
    rows: Sequence[Sequence[Any]],
    columns: Sequence[TableColumn],
    roles: ColumnRoleMap,
    *,
    normal_color: str,
) -> tuple[list[PersonaAggregate], list[EntityRef]]:
    """Build persona aggregates and entity refs for the kept groups, in rank order.

    Personas that end up without properties are dropped.
    """
    kept_ids = [persona.id for persona in kept]
    members = aggregation.frame[aggregation.frame["group_id"].isin(kept_ids)]
    members_by_group = {
        str(group_id): group for group_id, group in members.groupby("group_id", sort=False)
    }
    count_format = columns[roles.count].format

    personas: list[PersonaAggregate] = []
    entity_refs: list[EntityRef] = []
    for persona in kept:
        group = members_by_group.get(persona.id)
        if group is None:
            continue
        properties = build_persona_properties(
            group,
            count_format,
            has_buckets=roles.has_buckets,
            normal_color=normal_color,
        )
        entity_refs.extend(build_entity_refs(group, rows, columns, roles))
        if not properties:
            LOGGER.debug("Dropping persona %s without properties", persona.id)
            continue
        personas.append(
            PersonaAggregate(
                id=persona.id,
                properties=properties,
                total_count=persona.total_count,
                selection=(persona.selection,),
            )
        )
    return personas, entity_refs
