from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from numbers import Number
from typing import Any

from cluster_personas.colors import bar_palette
from cluster_personas.contracts import (
    OTHER_PERSONA_ID,
    Bar,
    Link,
    OtherAggregate,
    PersonaAggregate,
    SubSelection,
    SubSelectionEntry,
)
from cluster_personas.io.schema import ColumnRoleMap, cell
from cluster_personas.preprocess.values import cell_text, is_missing, make_ref_id

LOGGER = logging.getLogger(__name__)


def sub_selection_entry(counts: Sequence[float], selected_color: str) -> SubSelectionEntry:
    palette = bar_palette(selected_color, len(counts), is_selection=True)
    return SubSelectionEntry(
        bars=tuple(Bar(count=count, color=palette[index].css()) for index, count in enumerate(counts))
    )


def _highlight_weight(value: Any) -> float | None:
    if is_missing(value) or isinstance(value, bool) or not isinstance(value, Number):
        return None
    return value


def build_sub_selection(
    rows: Sequence[Sequence[Any]],
    highlights: Sequence[Any] | None,
    roles: ColumnRoleMap,
    personas: Mapping[str, PersonaAggregate],
    other: OtherAggregate,
    selected_color: str,
) -> SubSelection | None:
    """Map each highlighted group to its colored highlight bars.

    Returns ``None`` when the table carries no highlight data. Rows folded into
    the "other" bucket add up into a single bar under ``OTHER_PERSONA_ID``;
    rows of unknown groups are skipped.
    """
    if highlights is None:
        return None

    folded = set(other.persona_ids)
    counts_by_persona: dict[str, list[float]] = {}
    skipped = 0
    for row, raw_weight in zip(rows, highlights):
        weight = _highlight_weight(raw_weight)
        if weight is None:
            continue
        persona_id = cell_text(cell(row, roles.group_id))
        if not persona_id:
            continue

        if persona_id in folded:
            previous = counts_by_persona.get(OTHER_PERSONA_ID, [0])
            counts_by_persona[OTHER_PERSONA_ID] = [previous[0] + weight]
            continue

        persona = personas.get(persona_id)
        if persona is None:
            skipped += 1
            continue

        counts = counts_by_persona.setdefault(persona_id, [0] * len(persona.properties))
        ref_id = make_ref_id(persona_id, cell(row, roles.bucket), roles.has_buckets)
        for index, prop in enumerate(persona.properties):
            if prop.entity_ref_id == ref_id:
                counts[index] += weight

    if skipped:
        LOGGER.debug("Skipped %d highlighted rows of unknown groups", skipped)
    return {
        persona_id: sub_selection_entry(counts, selected_color)
        for persona_id, counts in counts_by_persona.items()
    }


@dataclass(frozen=True)
class PersonaSelection:
    """What a consumer emits when a persona (or the "other" bucket) is selected."""

    persona_id: str
    tokens: tuple[Any, ...]
    sub_selection: SubSelection


def build_persona_selection(
    persona_id: str,
    personas: Mapping[str, PersonaAggregate],
    links: Sequence[Link],
    other: OtherAggregate,
    selected_color: str,
) -> PersonaSelection | None:
    if persona_id == OTHER_PERSONA_ID:
        if other.selection is None:
            return None
        return PersonaSelection(
            persona_id=persona_id,
            tokens=(other.selection,),
            sub_selection={persona_id: sub_selection_entry([other.count], selected_color)},
        )

    persona = personas.get(persona_id)
    if persona is None or not persona.selection:
        return None

    sub_selection: SubSelection = {
        persona_id: sub_selection_entry([prop.count for prop in persona.properties], selected_color)
    }
    for link in links:
        if link.source == persona_id:
            sub_selection[link.target] = sub_selection_entry([0], selected_color)
        elif link.target == persona_id:
            sub_selection[link.source] = sub_selection_entry([0], selected_color)
    return PersonaSelection(persona_id=persona_id, tokens=persona.selection, sub_selection=sub_selection)
