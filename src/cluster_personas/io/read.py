from __future__ import annotations

from pathlib import Path
from typing import Any

import pandas as pd

from cluster_personas.config import ColumnsConfig
from cluster_personas.io.schema import TableColumn, TableSnapshot


def load_table(path: Path) -> pd.DataFrame:
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    if path.suffix == ".csv":
        # utf-8-sig strips BOM-prefixed headers commonly found in exported CSV files.
        return pd.read_csv(path, encoding="utf-8-sig")
    raise ValueError(f"Unsupported table file type: {path.suffix}")


def _validate_columns(frame: pd.DataFrame, columns: ColumnsConfig) -> None:
    missing = [column for column in columns.required_columns() if column not in frame.columns]
    if missing:
        missing_str = ", ".join(missing)
        raise ValueError(f"Missing required columns in table: {missing_str}")


def _as_number(value: float) -> float | int | None:
    if pd.isna(value):
        return None
    if float(value).is_integer():
        return int(value)
    return float(value)


def _highlights(frame: pd.DataFrame, column: str) -> tuple[float | int | None, ...]:
    weights = pd.to_numeric(frame[column], errors="coerce")
    return tuple(_as_number(value) for value in weights)


def _cells(values: pd.DataFrame) -> list[tuple[Any, ...]]:
    as_objects = values.astype(object)
    as_objects = as_objects.where(as_objects.notna(), None)
    return list(as_objects.itertuples(index=False, name=None))


def frame_to_snapshot(frame: pd.DataFrame, columns: ColumnsConfig) -> TableSnapshot:
    """Tag the columns of ``frame`` with their configured roles and split off highlights."""
    _validate_columns(frame, columns)

    working = frame.copy()
    for column in columns.date_columns:
        if column in working.columns:
            working[column] = pd.to_datetime(working[column], errors="coerce")

    highlights = None
    if columns.highlight:
        highlights = _highlights(working, columns.highlight)
        working = working.drop(columns=[columns.highlight])

    role_tags = columns.role_tags()
    table_columns = tuple(
        TableColumn(
            name=str(name),
            roles=role_tags.get(str(name), frozenset()),
            format=columns.formats.get(str(name)),
        )
        for name in working.columns
    )
    return TableSnapshot(
        columns=table_columns,
        rows=tuple(_cells(working)),
        highlights=highlights,
    )


def load_snapshot(path: Path, columns: ColumnsConfig) -> TableSnapshot:
    return frame_to_snapshot(load_table(path), columns)
