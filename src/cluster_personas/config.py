from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

HEX_COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"

GAUGE_DEFAULT_COLOR = "#41455e"
SELECTED_GAUGE_DEFAULT_COLOR = "#00bad3"
MAX_PERSONAS_DEFAULT = 20

MAX_PERSONAS_ENV = "CLUSTER_PERSONAS_MAX_PERSONAS"


class ColumnsConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    group_id: str
    name: str
    count: str
    bucket: str | None = None
    image_url: list[str] = Field(default_factory=list)
    background_color: str | None = None
    link_target: str | None = None
    link_weight: str | None = None
    highlight: str | None = None
    formats: dict[str, str] = Field(default_factory=dict)
    date_columns: list[str] = Field(default_factory=list)

    def role_tags(self) -> dict[str, frozenset[str]]:
        """Map each configured source column to the role tags it carries."""
        assignments: list[tuple[str, str | None]] = [
            ("group_id", self.group_id),
            ("name", self.name),
            ("count", self.count),
            ("bucket", self.bucket),
            ("background_color", self.background_color),
            ("link_target", self.link_target),
            ("link_weight", self.link_weight),
        ]
        assignments.extend(("image_url", column) for column in self.image_url)

        tags: dict[str, set[str]] = {}
        for role, column in assignments:
            if column:
                tags.setdefault(column, set()).add(role)
        return {column: frozenset(roles) for column, roles in tags.items()}

    def required_columns(self) -> list[str]:
        optional = [
            self.bucket,
            self.background_color,
            self.link_target,
            self.link_weight,
            self.highlight,
        ]
        columns = [self.group_id, self.name, self.count]
        columns.extend(column for column in optional if column)
        columns.extend(self.image_url)
        return list(dict.fromkeys(columns))


class PresentationConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    layout: Literal["cola", "orbital"] = "cola"
    max_personas: int = Field(default=MAX_PERSONAS_DEFAULT, ge=1)
    show_other: bool = True
    normal_color: str = Field(default=GAUGE_DEFAULT_COLOR, pattern=HEX_COLOR_PATTERN)
    selected_color: str = Field(default=SELECTED_GAUGE_DEFAULT_COLOR, pattern=HEX_COLOR_PATTERN)


class OutputsConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    indent: int = Field(default=2, ge=0)
    sort_keys: bool = False


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    columns: ColumnsConfig
    presentation: PresentationConfig = Field(default_factory=PresentationConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    max_personas = os.getenv(MAX_PERSONAS_ENV)
    if not max_personas:
        return data
    presentation = dict(data.get("presentation") or {})
    presentation["max_personas"] = max_personas
    return {**data, "presentation": presentation}


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    return AppConfig.model_validate(_apply_env_overrides(data))
