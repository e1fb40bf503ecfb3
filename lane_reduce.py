#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
7 レーン -> 6 レーン変換（Bestdori -> Costell III）
- lane < 3 はそのまま、lane > 3 は -1
- lane == 3（中央）は隣の lane 2 / lane 4 の占有で左右を決める
    - 両方ふさがっている -> ノーツを落とす（dropped に数える）
    - 左だけ -> 3、右だけ -> 2
    - どちらも空き -> 直前のノーツと逆側へ（最初は 2）
- Long / Slide は始点だけ判定。途中の lane 3 は直前の点の lane を引き継ぐ
- 占有は元の 7 レーン空間で、変換前に全ノーツから一度だけ作る
"""

import enum
from dataclasses import replace
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from bestdori_chart import Chart, Connection, Note, PathNote, SingleNote

CENTER_LANE = 3
LEFT_NEIGHBOR = CENTER_LANE - 1
RIGHT_NEIGHBOR = CENTER_LANE + 1
TARGET_LANES = 6


class Side(enum.Enum):
    UNKNOWN = "unknown"
    LEFT = "left"
    RIGHT = "right"


class OccupancyRange(NamedTuple):
    lane: int
    start_beat: float
    end_beat: float


def occupancy_range(note: Note) -> Optional[OccupancyRange]:
    """Range a note holds in the 7-lane space, or None for BPM/System."""
    if isinstance(note, SingleNote):
        return OccupancyRange(note.lane, note.beat, note.beat)
    if isinstance(note, PathNote):
        return OccupancyRange(note.first.lane, note.first.beat, note.last.beat)
    return None


class OccupancyIndex:
    """Read-only per-lane interval lists built once per conversion."""

    def __init__(self, ranges: Iterable[OccupancyRange]):
        by_lane: Dict[int, List[Tuple[float, float]]] = {}
        for r in ranges:
            by_lane.setdefault(r.lane, []).append((r.start_beat, r.end_beat))
        self._by_lane = {lane: tuple(spans) for lane, spans in by_lane.items()}

    @classmethod
    def from_chart(cls, chart: Chart) -> "OccupancyIndex":
        return cls(r for r in map(occupancy_range, chart) if r is not None)

    def ranges(self, lane: int) -> Tuple[Tuple[float, float], ...]:
        return self._by_lane.get(lane, ())

    def is_occupied(self, lane: int, beat: float) -> bool:
        return any(start <= beat <= end for start, end in self.ranges(lane))


def shift_lane(lane: int) -> int:
    """Map a non-center source lane (0..6) onto the target lanes 0..TARGET_LANES-1."""
    return lane if lane < CENTER_LANE else lane - 1


def side_of(lane: int) -> Side:
    return Side.LEFT if lane <= LEFT_NEIGHBOR else Side.RIGHT


def resolve_center(index: OccupancyIndex, beat: float, last_side: Side) -> Optional[int]:
    """Target lane for a center-lane point at `beat`, or None when both neighbours are held."""
    has_left = index.is_occupied(LEFT_NEIGHBOR, beat)
    has_right = index.is_occupied(RIGHT_NEIGHBOR, beat)
    if has_left and has_right:
        return None
    if has_left:
        return CENTER_LANE
    if has_right:
        return LEFT_NEIGHBOR
    return CENTER_LANE if last_side is Side.LEFT else LEFT_NEIGHBOR


class LaneDecision(NamedTuple):
    note: Optional[Note]  # None = dropped
    side: Side


def _map_single(note: SingleNote, index: OccupancyIndex, last_side: Side) -> LaneDecision:
    if note.lane != CENTER_LANE:
        lane = shift_lane(note.lane)
    else:
        lane = resolve_center(index, note.beat, last_side)
        if lane is None:
            return LaneDecision(None, last_side)
    return LaneDecision(replace(note, lane=lane), side_of(lane))


def _map_path(note: PathNote, index: OccupancyIndex, last_side: Side) -> LaneDecision:
    start_lane: Optional[int] = None
    if note.first.lane == CENTER_LANE:
        start_lane = resolve_center(index, note.first.beat, last_side)
        if start_lane is None:
            return LaneDecision(None, last_side)

    conns: List[Connection] = []
    for i, c in enumerate(note.connections):
        if c.lane != CENTER_LANE:
            lane = shift_lane(c.lane)
        elif i == 0:
            lane = start_lane
        else:
            # 途中で左右が入れ替わらないよう直前の点に合わせる
            lane = conns[-1].lane
        conns.append(replace(c, lane=lane))
    return LaneDecision(replace(note, connections=tuple(conns)), side_of(conns[-1].lane))


def map_note(note: Note, index: OccupancyIndex, last_side: Side) -> LaneDecision:
    """Decide one note's 6-lane placement given the side preference so far."""
    if isinstance(note, SingleNote):
        return _map_single(note, index, last_side)
    if isinstance(note, PathNote):
        return _map_path(note, index, last_side)
    return LaneDecision(note, last_side)


class ConversionResult(NamedTuple):
    chart: Chart
    dropped_count: int


def convert(chart: Chart) -> ConversionResult:
    """
    Convert a 7-lane chart to 6 lanes.

    Notes are processed in chart order; the side preference is folded
    over that order. Returns the kept notes (same relative order) and
    the number of dropped notes (a Long/Slide counts once).
    """
    index = OccupancyIndex.from_chart(chart)
    out: Chart = []
    dropped = 0
    side = Side.UNKNOWN
    for note in chart:
        decision = map_note(note, index, side)
        side = decision.side
        if decision.note is None:
            dropped += 1
            continue
        out.append(decision.note)
    return ConversionResult(out, dropped)


__all__ = [
    "CENTER_LANE",
    "TARGET_LANES",
    "Side",
    "OccupancyRange",
    "OccupancyIndex",
    "occupancy_range",
    "shift_lane",
    "resolve_center",
    "LaneDecision",
    "map_note",
    "ConversionResult",
    "convert",
]
