from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from cluster_personas.contracts import OtherAggregate
from cluster_personas.features.aggregates import PersonaCount
from cluster_personas.selection import union_tokens


@dataclass(frozen=True)
class PersonaPartition:
    kept: tuple[PersonaCount, ...]
    other: OtherAggregate


def rank_personas(persona_counts: Sequence[PersonaCount]) -> list[PersonaCount]:
    """Order by descending total count; ties keep their encounter order."""
    return sorted(persona_counts, key=lambda persona: persona.total_count, reverse=True)


def partition_personas(
    persona_counts: Sequence[PersonaCount],
    max_personas: int,
    show_other: bool,
    combine: Callable[[Any, Any], Any] = union_tokens,
) -> PersonaPartition:
    """Keep the ``max_personas`` largest groups and fold the rest into the "other" bucket.

    With ``show_other`` disabled the remainder is dropped and the "other"
    bucket stays empty.
    """
    if max_personas < 1:
        raise ValueError(f"max_personas must be >= 1, got {max_personas}")

    ranked = rank_personas(persona_counts)
    kept = tuple(ranked[:max_personas])
    if not show_other:
        return PersonaPartition(kept=kept, other=OtherAggregate())

    count = 0
    folded_ids: list[str] = []
    selection: Any = None
    for persona in ranked[max_personas:]:
        count += persona.total_count
        folded_ids.append(persona.id)
        if persona.selection is None:
            continue
        selection = persona.selection if selection is None else combine(selection, persona.selection)

    return PersonaPartition(
        kept=kept,
        other=OtherAggregate(count=count, persona_ids=tuple(folded_ids), selection=selection),
    )
