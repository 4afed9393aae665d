from __future__ import annotations

import logging

from cluster_personas.config import PresentationConfig
from cluster_personas.contracts import ConversionResult, PersonasData, convert_to_lookup
from cluster_personas.features.aggregates import aggregate_rows, build_personas
from cluster_personas.features.overflow import partition_personas
from cluster_personas.features.subselection import build_sub_selection
from cluster_personas.io.schema import TableSnapshot, resolve_column_roles
from cluster_personas.selection import DEFAULT_TOKEN_ALGEBRA, TokenAlgebra

LOGGER = logging.getLogger(__name__)

ORBITAL_LAYOUT = "orbital"


def convert_table(
    snapshot: TableSnapshot,
    settings: PresentationConfig,
    *,
    tokens: TokenAlgebra = DEFAULT_TOKEN_ALGEBRA,
) -> ConversionResult | None:
    """Convert one table snapshot into persona aggregates and the highlight overlay.

    Returns ``None`` when there is nothing to render: no columns, no rows, or
    a missing group id, name or count role.
    """
    if not snapshot.columns or not snapshot.rows:
        return None

    roles = resolve_column_roles(snapshot.columns)
    if roles is None:
        LOGGER.debug("Table is not convertible: group id, name or count role missing")
        return None

    rows = snapshot.rows
    aggregation = aggregate_rows(rows, snapshot.columns, roles, tokens)
    partition = partition_personas(
        aggregation.persona_counts,
        settings.max_personas,
        settings.show_other,
        combine=tokens.combine,
    )
    personas, entity_refs = build_personas(
        aggregation,
        partition.kept,
        rows,
        snapshot.columns,
        roles,
        normal_color=settings.normal_color,
    )

    data = PersonasData(
        entity_refs=convert_to_lookup(entity_refs, lambda ref: ref),
        personas=convert_to_lookup(personas, lambda persona: persona),
        links=aggregation.links,
        other=partition.other,
    )
    sub_selection = build_sub_selection(
        rows,
        snapshot.highlights,
        roles,
        data.personas,
        data.other,
        settings.selected_color,
    )
    LOGGER.info(
        "Converted %d rows: %d personas kept, %d folded into other, %d links",
        len(rows),
        len(data.personas),
        len(data.other.persona_ids),
        len(data.links),
    )
    return ConversionResult(
        data=data,
        sub_selection=sub_selection,
        has_links=roles.has_links,
        has_buckets=roles.has_buckets,
        layout=settings.layout if roles.has_links else ORBITAL_LAYOUT,
    )
