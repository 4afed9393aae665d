from __future__ import annotations

from cluster_personas.colors import bar_palette
from cluster_personas.contracts import TRANSPARENT_PROPERTY_COLOR, Link
from cluster_personas.features.aggregates import (
    aggregate_rows,
    build_personas,
    build_reference_frame,
)
from cluster_personas.io.schema import TableColumn, resolve_column_roles
from cluster_personas.selection import ColumnEquals

NORMAL = "#41455e"

ROWS = (
    ("a", "Alpha", "3", "x", "b", "2.5"),
    ("b", "Beta", "5", "x", "a", "9"),
    ("a", "Alpha 2", "2", "y", "a", None),
    ("c", "<i>Gamma</i>", "abc", "x", None, None),
    (None, "Nobody", "7", "x", None, None),
    ("b", "Beta", "1", "y", "c", "heavy"),
)


def _columns(*, with_bucket: bool, count_format: str | None = None) -> tuple[TableColumn, ...]:
    return (
        TableColumn("persona", frozenset({"group_id"})),
        TableColumn("name", frozenset({"name"})),
        TableColumn("n", frozenset({"count"}), format=count_format),
        TableColumn("segment", frozenset({"bucket"}) if with_bucket else frozenset()),
        TableColumn("target", frozenset({"link_target"})),
        TableColumn("weight", frozenset({"link_weight"})),
    )


def _aggregate(*, with_bucket: bool, count_format: str | None = None):
    columns = _columns(with_bucket=with_bucket, count_format=count_format)
    roles = resolve_column_roles(columns)
    assert roles is not None
    return columns, roles, aggregate_rows(ROWS, columns, roles)


def test_reference_frame_skips_rows_without_group_id() -> None:
    columns = _columns(with_bucket=True)
    roles = resolve_column_roles(columns)
    assert roles is not None

    frame = build_reference_frame(ROWS, roles)

    assert frame["row_index"].tolist() == [0, 1, 2, 3, 5]
    assert frame["ref_id"].tolist() == ["a_x", "b_x", "a_y", "c_x", "b_y"]
    assert frame["n"].tolist() == [3, 5, 2, 0, 1]


def test_persona_counts_follow_first_encounter_order() -> None:
    _, _, aggregation = _aggregate(with_bucket=False)

    assert [(p.id, p.total_count) for p in aggregation.persona_counts] == [
        ("a", 5),
        ("b", 6),
        ("c", 0),
    ]
    assert aggregation.persona_counts[0].selection == ColumnEquals(column="persona", value="a")


def test_links_are_deduplicated_by_unordered_pair_and_skip_self_links() -> None:
    _, _, aggregation = _aggregate(with_bucket=False)

    assert aggregation.links == (
        Link(source="a", target="b", weight=2.5),
        Link(source="b", target="c", weight=None),
    )


def test_build_personas_without_buckets_uses_transparent_single_property() -> None:
    columns, roles, aggregation = _aggregate(with_bucket=False)

    personas, refs = build_personas(
        aggregation, aggregation.persona_counts, ROWS, columns, roles, normal_color=NORMAL
    )

    assert [persona.id for persona in personas] == ["a", "b", "c"]
    alpha = personas[0]
    assert alpha.total_count == 5
    assert len(alpha.properties) == 1
    assert alpha.properties[0].entity_ref_id == "a"
    assert alpha.properties[0].is_primary
    assert alpha.properties[0].color == TRANSPARENT_PROPERTY_COLOR
    assert alpha.selection == (ColumnEquals(column="persona", value="a"),)

    names = {ref.id: ref.name for ref in refs}
    assert names == {"a": "Alpha", "b": "Beta", "c": "Gamma"}


def test_build_personas_with_buckets_sorts_and_colors_properties() -> None:
    columns, roles, aggregation = _aggregate(with_bucket=True)

    personas, refs = build_personas(
        aggregation, aggregation.persona_counts, ROWS, columns, roles, normal_color=NORMAL
    )

    alpha = personas[0]
    palette = bar_palette(NORMAL, 2, is_selection=False)
    assert [prop.entity_ref_id for prop in alpha.properties] == ["a_x", "a_y"]
    assert [prop.count for prop in alpha.properties] == [3, 2]
    assert [prop.is_primary for prop in alpha.properties] == [True, False]
    assert [prop.color for prop in alpha.properties] == [palette[0].css(), palette[1].css()]
    assert sum(prop.count for prop in alpha.properties) == alpha.total_count

    names = {ref.id: ref.name for ref in refs}
    assert names["a_x"] == "Alpha"
    assert names["a_y"] == "Alpha 2"


def test_build_personas_only_covers_kept_groups_in_given_order() -> None:
    columns, roles, aggregation = _aggregate(with_bucket=False)
    by_id = {persona.id: persona for persona in aggregation.persona_counts}
    kept = [by_id["b"], by_id["a"]]

    personas, refs = build_personas(aggregation, kept, ROWS, columns, roles, normal_color=NORMAL)

    assert [persona.id for persona in personas] == ["b", "a"]
    assert {ref.id for ref in refs} == {"a", "b"}


def test_count_format_fills_formatted_count() -> None:
    columns, roles, aggregation = _aggregate(with_bucket=False, count_format="03d")

    personas, _ = build_personas(
        aggregation, aggregation.persona_counts, ROWS, columns, roles, normal_color=NORMAL
    )

    assert personas[0].properties[0].formatted_count == "005"
