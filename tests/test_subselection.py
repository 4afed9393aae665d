from __future__ import annotations

from cluster_personas.colors import bar_palette
from cluster_personas.config import PresentationConfig
from cluster_personas.contracts import OTHER_PERSONA_ID, Bar
from cluster_personas.features.subselection import build_persona_selection, sub_selection_entry
from cluster_personas.io.schema import TableColumn, TableSnapshot
from cluster_personas.pipeline.convert import convert_table
from cluster_personas.selection import AnyOf, ColumnEquals

SELECTED = "#00bad3"
BASE_BAR_COLOR = "rgb(0,186,211)"

COLUMNS = (
    TableColumn("persona", frozenset({"group_id"})),
    TableColumn("name", frozenset({"name"})),
    TableColumn("n", frozenset({"count"})),
)

BUCKET_COLUMNS = (*COLUMNS, TableColumn("segment", frozenset({"bucket"})))

LINK_COLUMNS = (*COLUMNS, TableColumn("target", frozenset({"link_target"})))


def _convert(snapshot: TableSnapshot, **settings: object):
    result = convert_table(snapshot, PresentationConfig(**settings))
    assert result is not None
    return result


def test_each_highlighted_row_gets_a_base_colored_bar() -> None:
    rows = tuple((f"p{index}", f"Persona {index}", 1) for index in range(10))
    highlights = (7, 9, 30, 40, None, 30, 18, None, 27, 8)

    result = _convert(TableSnapshot(columns=COLUMNS, rows=rows, highlights=highlights))

    assert result.sub_selection is not None
    assert len(result.sub_selection) == 8
    assert "p4" not in result.sub_selection
    assert "p7" not in result.sub_selection
    for persona_id, weight in zip([f"p{index}" for index in range(10)], highlights):
        if weight is None:
            continue
        entry = result.sub_selection[persona_id]
        assert entry.compute_percentages
        assert entry.bars == (Bar(count=weight, color=BASE_BAR_COLOR),)


def test_no_highlight_data_yields_none_and_all_missing_yields_empty() -> None:
    rows = (("a", "A", 1), ("b", "B", 2))

    assert _convert(TableSnapshot(columns=COLUMNS, rows=rows)).sub_selection is None
    empty = _convert(TableSnapshot(columns=COLUMNS, rows=rows, highlights=(None, float("nan"))))
    assert empty.sub_selection == {}


def test_non_numeric_highlights_are_ignored() -> None:
    rows = (("a", "A", 1), ("b", "B", 2))

    result = _convert(TableSnapshot(columns=COLUMNS, rows=rows, highlights=("3", True)))

    assert result.sub_selection == {}


def test_folded_groups_accumulate_under_other() -> None:
    rows = (("a", "A", 10), ("b", "B", 2), ("c", "C", 1), ("a", "A", 0))
    highlights = (1, 2, 3, 4)

    result = _convert(
        TableSnapshot(columns=COLUMNS, rows=rows, highlights=highlights),
        max_personas=1,
    )

    assert result.sub_selection is not None
    assert set(result.sub_selection) == {"a", OTHER_PERSONA_ID}
    assert [bar.count for bar in result.sub_selection["a"].bars] == [5]
    assert [bar.count for bar in result.sub_selection[OTHER_PERSONA_ID].bars] == [5]


def test_bucketed_highlights_land_on_matching_property() -> None:
    rows = (("a", "A", 4, "y"), ("a", "A", 6, "x"), ("a", "A", 1, "x"))
    highlights = (2, None, 5)

    result = _convert(TableSnapshot(columns=BUCKET_COLUMNS, rows=rows, highlights=highlights))

    assert result.sub_selection is not None
    entry = result.sub_selection["a"]
    palette = bar_palette(SELECTED, 2, is_selection=True)
    assert entry.bars == (
        Bar(count=5, color=palette[0].css()),
        Bar(count=2, color=palette[1].css()),
    )


def test_sub_selection_entry_pads_palette_to_three_colors() -> None:
    entry = sub_selection_entry([1, 2, 3, 4], SELECTED)

    palette = bar_palette(SELECTED, 4, is_selection=True)
    assert [bar.color for bar in entry.bars] == [rgb.css() for rgb in palette]
    assert entry.bars[0].color == BASE_BAR_COLOR


def test_selecting_a_persona_zeroes_its_linked_neighbors() -> None:
    rows = (
        ("a", "A", 3, "b"),
        ("a", "A", 2, None),
        ("b", "B", 4, "c"),
        ("c", "C", 1, None),
        ("d", "D", 1, None),
    )
    result = _convert(TableSnapshot(columns=LINK_COLUMNS, rows=rows))
    data = result.data

    event = build_persona_selection("b", data.personas, data.links, data.other, SELECTED)

    assert event is not None
    assert event.persona_id == "b"
    assert event.tokens == (ColumnEquals(column="persona", value="b"),)
    assert set(event.sub_selection) == {"a", "b", "c"}
    assert [bar.count for bar in event.sub_selection["b"].bars] == [4]
    assert [bar.count for bar in event.sub_selection["a"].bars] == [0]
    assert [bar.count for bar in event.sub_selection["c"].bars] == [0]


def test_selecting_other_emits_folded_union_and_total() -> None:
    rows = (("a", "A", 9), ("b", "B", 2), ("c", "C", 3))
    result = _convert(TableSnapshot(columns=COLUMNS, rows=rows), max_personas=1)
    data = result.data

    event = build_persona_selection(OTHER_PERSONA_ID, data.personas, data.links, data.other, SELECTED)

    assert event is not None
    assert event.tokens == (
        AnyOf((ColumnEquals(column="persona", value="c"), ColumnEquals(column="persona", value="b"))),
    )
    assert event.sub_selection == {
        OTHER_PERSONA_ID: sub_selection_entry([5], SELECTED),
    }


def test_selecting_unknown_or_empty_other_returns_none() -> None:
    rows = (("a", "A", 9), ("b", "B", 2))
    result = _convert(TableSnapshot(columns=COLUMNS, rows=rows), max_personas=1, show_other=False)
    data = result.data

    assert build_persona_selection("zzz", data.personas, data.links, data.other, SELECTED) is None
    assert (
        build_persona_selection(OTHER_PERSONA_ID, data.personas, data.links, data.other, SELECTED)
        is None
    )
