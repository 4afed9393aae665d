from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from cluster_personas.config import PresentationConfig
from cluster_personas.contracts import ConversionResult
from cluster_personas.features.subselection import PersonaSelection, build_persona_selection
from cluster_personas.io.schema import TableSnapshot, merge_snapshots
from cluster_personas.pipeline.convert import convert_table
from cluster_personas.selection import DEFAULT_TOKEN_ALGEBRA, TokenAlgebra

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUpdate:
    result: ConversionResult | None
    data_changed: bool


def _serialize(result: ConversionResult) -> str:
    return json.dumps(result.data.to_dict(), sort_keys=True, default=str)


class ClusterMapSession:
    """Retains the last snapshot and conversion for a host that streams table batches."""

    def __init__(
        self,
        settings: PresentationConfig,
        tokens: TokenAlgebra = DEFAULT_TOKEN_ALGEBRA,
    ) -> None:
        self.settings = settings
        self.tokens = tokens
        self.snapshot: TableSnapshot | None = None
        self.result: ConversionResult | None = None
        self._serialized: str | None = None

    def update(self, snapshot: TableSnapshot, *, append: bool = False) -> SessionUpdate:
        """Convert ``snapshot`` (appended to the retained rows when ``append``).

        ``data_changed`` tells the caller whether the aggregate payload differs
        from the previous conversion; the sub-selection is always current.
        """
        if append and self.snapshot is not None:
            snapshot = merge_snapshots(self.snapshot, snapshot)
        self.snapshot = snapshot

        result = convert_table(snapshot, self.settings, tokens=self.tokens)
        if result is None:
            changed = self.result is not None
            self.result = None
            self._serialized = None
            return SessionUpdate(result=None, data_changed=changed)

        serialized = _serialize(result)
        changed = serialized != self._serialized
        if not changed:
            LOGGER.debug("Conversion unchanged; keeping previous aggregates")
        self.result = result
        self._serialized = serialized
        return SessionUpdate(result=result, data_changed=changed)

    def select(self, persona_id: str) -> PersonaSelection | None:
        if self.result is None:
            return None
        data = self.result.data
        return build_persona_selection(
            persona_id,
            data.personas,
            data.links,
            data.other,
            self.settings.selected_color,
        )
