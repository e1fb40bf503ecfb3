#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Bestdori chart JSON <-> typed notes
- チャートは note レコードの配列（順序に意味がある）
- BPM / System はレーンを持たない。中身はそのまま通す
- Single / Directional は lane + beat
- Long / Slide は connections: [{lane, beat, ...}, ...]（2 点以上、beat 昇順）
- 元レコードは payload として保持し、書き出し時は lane / beat だけ差し替える
  （キー順・flick/hidden/direction/width などはそのまま）
- note 同士の == は kind と lane / beat（配置）だけを比べる。payload は比較しない
  （payload まで比べたいときは note_to_record の結果を比べる）
"""

import enum
import json
import math
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

SOURCE_LANES = 7


class ChartFormatError(ValueError):
    """A chart record breaks the note contract."""


class NoteKind(enum.Enum):
    TEMPO = "BPM"
    CONTROL = "System"
    TAP = "Single"
    FLICK = "Directional"
    HOLD = "Long"
    SLIDE = "Slide"


PASS_THROUGH_KINDS = (NoteKind.TEMPO, NoteKind.CONTROL)
SINGLE_KINDS = (NoteKind.TAP, NoteKind.FLICK)


@dataclass(frozen=True)
class Connection:
    lane: int
    beat: float
    payload: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class PassThroughNote:
    kind: NoteKind
    payload: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class SingleNote:
    kind: NoteKind
    lane: int
    beat: float
    payload: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class PathNote:
    kind: NoteKind
    connections: Tuple[Connection, ...]
    payload: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def first(self) -> Connection:
        return self.connections[0]

    @property
    def last(self) -> Connection:
        return self.connections[-1]


Note = Union[PassThroughNote, SingleNote, PathNote]
Chart = List[Note]


def _where(index: int, conn_index: int = -1) -> str:
    if conn_index < 0:
        return f"note #{index}"
    return f"note #{index} connection #{conn_index}"


def _read_lane(rec: Dict[str, Any], where: str) -> int:
    lane = rec.get("lane")
    if isinstance(lane, bool) or not isinstance(lane, int):
        raise ChartFormatError(f"{where}: lane must be an integer, got {lane!r}")
    if not 0 <= lane < SOURCE_LANES:
        raise ChartFormatError(f"{where}: lane {lane} outside 0..{SOURCE_LANES - 1}")
    return lane


def _read_beat(rec: Dict[str, Any], where: str) -> float:
    beat = rec.get("beat")
    if isinstance(beat, bool) or not isinstance(beat, (int, float)):
        raise ChartFormatError(f"{where}: beat must be a number, got {beat!r}")
    if isinstance(beat, float) and not math.isfinite(beat):
        raise ChartFormatError(f"{where}: beat must be finite, got {beat!r}")
    return beat


def parse_note(rec: Any, index: int) -> Note:
    where = _where(index)
    if not isinstance(rec, dict):
        raise ChartFormatError(f"{where}: expected an object, got {type(rec).__name__}")
    try:
        kind = NoteKind(rec.get("type"))
    except ValueError:
        raise ChartFormatError(f"{where}: unknown note type {rec.get('type')!r}") from None

    if kind in PASS_THROUGH_KINDS:
        return PassThroughNote(kind, deepcopy(rec))

    if kind in SINGLE_KINDS:
        return SingleNote(kind, _read_lane(rec, where), _read_beat(rec, where), deepcopy(rec))

    conns = rec.get("connections")
    if not isinstance(conns, list) or len(conns) < 2:
        raise ChartFormatError(f"{where}: {kind.value} needs at least 2 connections")
    out: List[Connection] = []
    for ci, c in enumerate(conns):
        cw = _where(index, ci)
        if not isinstance(c, dict):
            raise ChartFormatError(f"{cw}: expected an object, got {type(c).__name__}")
        conn = Connection(_read_lane(c, cw), _read_beat(c, cw), deepcopy(c))
        # 並べ替えはしない（first/last の意味が変わるため）
        if out and conn.beat < out[-1].beat:
            raise ChartFormatError(
                f"{cw}: beat {conn.beat} comes before {out[-1].beat}; connections must be sorted by beat"
            )
        out.append(conn)
    return PathNote(kind, tuple(out), deepcopy(rec))


def parse_chart(records: Any) -> Chart:
    if not isinstance(records, list):
        raise ChartFormatError(f"chart must be a JSON array, got {type(records).__name__}")
    return [parse_note(rec, i) for i, rec in enumerate(records)]


def _placed(payload: Dict[str, Any], lane: int, beat: float) -> Dict[str, Any]:
    rec = deepcopy(payload)
    rec["lane"] = lane
    rec["beat"] = beat
    return rec


def note_to_record(note: Note) -> Dict[str, Any]:
    rec: Dict[str, Any] = {"type": note.kind.value}
    if isinstance(note, PassThroughNote):
        rec.update(deepcopy(note.payload))
    elif isinstance(note, SingleNote):
        rec.update(_placed(note.payload, note.lane, note.beat))
    else:
        rec.update(deepcopy(note.payload))
        rec["connections"] = [_placed(c.payload, c.lane, c.beat) for c in note.connections]
    return rec


def chart_to_records(chart: Chart) -> List[Dict[str, Any]]:
    return [note_to_record(n) for n in chart]


def load_chart(path: Union[str, Path]) -> Chart:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return parse_chart(data)


def dump_chart(chart: Chart, path: Union[str, Path]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(chart_to_records(chart), f, ensure_ascii=False, indent=2)
