"""
modules/planning/lane_assignment.py
-------------------------------------
Lays same-day itinerary items out in side-by-side lanes so overlapping
intervals never draw on top of each other.

Algorithm (per day)
~~~~~~~~~~~~~~~~~~~
  1. Stable sort by start_time; tied starts keep their insertion order.
  2. Overlap graph: i ~ j  iff  start_i < end_j and start_j < end_i
     (half-open; touching endpoints do not overlap).
  3. Greedy colouring in sorted order: each item takes the smallest lane not
     used by an already-coloured neighbour.
  4. total_lanes = max(lane) + 1 for the whole day, so every item in the day
     column shares one uniform lane width.

Greedy colouring is O(n²) and deterministic; it does not promise the minimum
number of lanes.

Rendering contract: width = 100 / total_lanes percent, left = lane * width.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Sequence

from tripcanvas.schemas.itinerary import ItineraryItem


@dataclass(frozen=True)
class LanePlacement:
    """An item annotated with its lane within the day column."""
    item: ItineraryItem
    lane: int
    total_lanes: int

    @property
    def width_percent(self) -> float:
        return 100.0 / self.total_lanes

    @property
    def left_percent(self) -> float:
        return self.lane * self.width_percent


def overlaps(a: ItineraryItem, b: ItineraryItem) -> bool:
    """Half-open interval intersection."""
    return a.start_time < b.end_time and b.start_time < a.end_time


def overlap_graph(items: Sequence[ItineraryItem]) -> dict[int, set[int]]:
    """Adjacency sets keyed by index into ``items``."""
    graph: dict[int, set[int]] = {i: set() for i in range(len(items))}
    for i in range(len(items)):
        for j in range(i + 1, len(items)):
            if overlaps(items[i], items[j]):
                graph[i].add(j)
                graph[j].add(i)
    return graph


def assign_lanes(items: Iterable[ItineraryItem]) -> list[LanePlacement]:
    """
    Lane placements for items that all share one day, in start-time order.

    An empty input yields an empty list.
    """
    ordered = sorted(items, key=lambda it: it.start_time)
    if not ordered:
        return []

    graph = overlap_graph(ordered)
    lanes: dict[int, int] = {}
    for idx in range(len(ordered)):
        used = {lanes[n] for n in graph[idx] if n in lanes}
        lane = 0
        while lane in used:
            lane += 1
        lanes[idx] = lane

    total = max(lanes.values()) + 1
    return [LanePlacement(item=ordered[i], lane=lanes[i], total_lanes=total)
            for i in range(len(ordered))]


def layout_days(items: Iterable[ItineraryItem]) -> dict[date, list[LanePlacement]]:
    """Group a whole itinerary by day and assign lanes per day."""
    by_day: dict[date, list[ItineraryItem]] = {}
    for item in items:
        by_day.setdefault(item.day, []).append(item)
    return {day: assign_lanes(day_items) for day, day_items in sorted(by_day.items())}
