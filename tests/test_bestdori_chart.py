import json
from copy import deepcopy

import pytest

from bestdori_chart import (
    ChartFormatError,
    Connection,
    NoteKind,
    PassThroughNote,
    PathNote,
    SingleNote,
    chart_to_records,
    dump_chart,
    load_chart,
    note_to_record,
    parse_chart,
)

SAMPLE = [
    {"type": "BPM", "bpm": 172, "beat": 0},
    {"type": "System", "data": "bgm012.wav", "beat": 0},
    {"type": "Single", "lane": 3, "beat": 1.5},
    {"type": "Single", "lane": 1, "beat": 2, "flick": True},
    {"type": "Directional", "lane": 6, "beat": 2.5, "direction": "Right", "width": 2},
    {
        "type": "Slide",
        "connections": [
            {"lane": 2, "beat": 3},
            {"lane": 4, "beat": 3.5, "hidden": True},
            {"lane": 5, "beat": 4, "flick": True},
        ],
    },
    {"type": "Long", "connections": [{"lane": 0, "beat": 5}, {"lane": 0, "beat": 6}]},
]


def test_parse_builds_typed_notes():
    chart = parse_chart(SAMPLE)
    assert [n.kind for n in chart] == [
        NoteKind.TEMPO,
        NoteKind.CONTROL,
        NoteKind.TAP,
        NoteKind.TAP,
        NoteKind.FLICK,
        NoteKind.SLIDE,
        NoteKind.HOLD,
    ]
    assert isinstance(chart[0], PassThroughNote)
    assert chart[2] == SingleNote(NoteKind.TAP, 3, 1.5)
    slide = chart[5]
    assert isinstance(slide, PathNote)
    assert slide.first == Connection(2, 3)
    assert slide.last == Connection(5, 4)


def test_records_round_trip_unchanged():
    assert chart_to_records(parse_chart(SAMPLE)) == SAMPLE


def test_key_order_and_beat_types_survive():
    rec = {"type": "Directional", "beat": 7, "lane": 5, "direction": "Left", "width": 1}
    (note,) = parse_chart([rec])
    out = note_to_record(note)
    assert list(out) == list(rec)
    assert isinstance(out["beat"], int)


def test_parse_copies_input():
    records = deepcopy(SAMPLE)
    chart = parse_chart(records)
    records[5]["connections"][1]["hidden"] = False
    records[4]["width"] = 9
    out = chart_to_records(chart)
    assert out[5]["connections"][1]["hidden"] is True
    assert out[4]["width"] == 2


def test_hand_built_notes_serialize():
    note = PathNote(NoteKind.HOLD, (Connection(1, 0), Connection(2, 1)))
    assert note_to_record(note) == {
        "type": "Long",
        "connections": [{"lane": 1, "beat": 0}, {"lane": 2, "beat": 1}],
    }
    assert note_to_record(SingleNote(NoteKind.FLICK, 4, 2)) == {"type": "Directional", "lane": 4, "beat": 2}


@pytest.mark.parametrize(
    "records, message",
    [
        ({"notes": []}, "JSON array"),
        (["Single"], "expected an object"),
        ([{"type": "Tick", "lane": 1, "beat": 0}], "unknown note type"),
        ([{"type": "Single", "beat": 0}], "lane must be an integer"),
        ([{"type": "Single", "lane": 2.0, "beat": 0}], "lane must be an integer"),
        ([{"type": "Single", "lane": True, "beat": 0}], "lane must be an integer"),
        ([{"type": "Single", "lane": 7, "beat": 0}], "outside 0..6"),
        ([{"type": "Directional", "lane": -1, "beat": 0}], "outside 0..6"),
        ([{"type": "Single", "lane": 1, "beat": "4"}], "beat must be a number"),
        ([{"type": "Single", "lane": 1, "beat": float("nan")}], "beat must be finite"),
        ([{"type": "Directional", "lane": 1, "beat": float("inf")}], "beat must be finite"),
        (
            [{"type": "Long", "connections": [{"lane": 1, "beat": 0}, {"lane": 1, "beat": float("-inf")}]}],
            "connection #1: beat must be finite",
        ),
        ([{"type": "Long", "connections": [{"lane": 1, "beat": 0}]}], "at least 2 connections"),
        ([{"type": "Slide"}], "at least 2 connections"),
        ([{"type": "Slide", "connections": [{"lane": 1, "beat": 0}, 3]}], "connection #1"),
        ([{"type": "Long", "connections": [{"lane": 1, "beat": 2}, {"lane": 9, "beat": 3}]}], "outside 0..6"),
    ],
)
def test_contract_violations(records, message):
    with pytest.raises(ChartFormatError, match=message):
        parse_chart(records)


def test_unsorted_connections_rejected():
    records = [
        {"type": "BPM", "bpm": 120, "beat": 0},
        {"type": "Slide", "connections": [{"lane": 1, "beat": 2}, {"lane": 2, "beat": 1}]},
    ]
    with pytest.raises(ChartFormatError, match=r"note #1 connection #1.*sorted by beat"):
        parse_chart(records)


def test_equal_connection_beats_allowed():
    (note,) = parse_chart([{"type": "Slide", "connections": [{"lane": 1, "beat": 2}, {"lane": 5, "beat": 2}]}])
    assert [c.lane for c in note.connections] == [1, 5]


def test_non_finite_beat_in_file_rejected(tmp_path):
    src = tmp_path / "nan.json"
    src.write_text('[{"type": "Single", "lane": 3, "beat": NaN}]', encoding="utf-8")
    with pytest.raises(ChartFormatError, match="beat must be finite"):
        load_chart(src)


def test_huge_integer_beat_accepted():
    (note,) = parse_chart([{"type": "Single", "lane": 0, "beat": 10 ** 400}])
    assert note.beat == 10 ** 400


def test_equality_covers_placement_only():
    fast, slow = parse_chart([{"type": "BPM", "bpm": 120, "beat": 0}, {"type": "BPM", "bpm": 200, "beat": 0}])
    plain, flicked = parse_chart(
        [{"type": "Single", "lane": 2, "beat": 1}, {"type": "Single", "lane": 2, "beat": 1, "flick": True}]
    )
    assert fast == slow
    assert plain == flicked
    assert note_to_record(fast) != note_to_record(slow)
    assert note_to_record(plain) != note_to_record(flicked)
    assert plain != SingleNote(NoteKind.FLICK, 2, 1)


def test_format_error_is_value_error():
    assert issubclass(ChartFormatError, ValueError)


def test_load_and_dump(tmp_path):
    src = tmp_path / "in.json"
    src.write_text(json.dumps(SAMPLE + [{"type": "System", "data": "フィーバー.wav", "beat": 8}]), encoding="utf-8")
    chart = load_chart(src)
    dst = tmp_path / "nested" / "out.json"
    dump_chart(chart, dst)
    text = dst.read_text(encoding="utf-8")
    assert "フィーバー.wav" in text
    assert json.loads(text) == chart_to_records(chart)
