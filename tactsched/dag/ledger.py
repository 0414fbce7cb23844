"""Per node time ledger built from sparse interval timelines."""

from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum
from typing import Any, FrozenSet, Iterator, List, Optional, Sequence, Tuple

from .errors import CapacityError


class LinkDirection(Enum):
    """Transfer direction of a physical link booking."""

    OUTBOUND = 0
    INBOUND = 1


@dataclass(frozen=True)
class LinkState:
    """Occupancy of one physical link during one tact."""

    outbound: Optional[Any] = None
    inbound: Optional[Any] = None

    @property
    def busy(self) -> bool:
        return self.outbound is not None or self.inbound is not None

    @property
    def directions(self) -> FrozenSet[LinkDirection]:
        found = set()
        if self.outbound is not None:
            found.add(LinkDirection.OUTBOUND)
        if self.inbound is not None:
            found.add(LinkDirection.INBOUND)
        return frozenset(found)


@dataclass(frozen=True)
class Tact:
    """Snapshot of one time unit of a compute node."""

    time: int
    task_id: Optional[int]
    links: Tuple[LinkState, ...]

    @property
    def processor_busy(self) -> bool:
        return self.task_id is not None


class Timeline:
    """Busy intervals of a single resource.

    Intervals are half open ``[start, end)``, never overlap, and are kept
    sorted by start time. Empty intervals are never stored.
    """

    def __init__(self):
        self._starts: List[int] = []
        self._intervals: List[Tuple[int, int, Any]] = []

    def __len__(self) -> int:
        return len(self._intervals)

    def __iter__(self) -> Iterator[Tuple[int, int, Any]]:
        return iter(self._intervals)

    def _first_candidate(self, time: int) -> int:
        # Index of the last interval starting at or before ``time``
        return max(bisect_right(self._starts, time) - 1, 0)

    def is_free(self, start: int, end: int) -> bool:
        if end <= start:
            return True
        i = self._first_candidate(start)
        while i < len(self._intervals):
            s, e, _ = self._intervals[i]
            if s >= end:
                return True
            if e > start:
                return False
            i += 1
        return True

    def next_free(self, start: int, length: int) -> int:
        """Earliest ``t >= start`` such that ``[t, t + length)`` is free."""
        if length <= 0:
            return start
        time = start
        i = self._first_candidate(time)
        while i < len(self._intervals):
            s, e, _ = self._intervals[i]
            if e <= time:
                i += 1
                continue
            if s >= time + length:
                break
            time = e
            i += 1
        return time

    def owner_at(self, time: int) -> Optional[Any]:
        i = bisect_right(self._starts, time) - 1
        if i >= 0:
            s, e, owner = self._intervals[i]
            if s <= time < e:
                return owner
        return None

    def book(self, start: int, end: int, owner: Any):
        if end <= start:
            return
        if not self.is_free(start, end):
            raise ValueError(f"Interval [{start}, {end}) overlaps an existing booking")
        i = bisect_right(self._starts, start)
        self._starts.insert(i, start)
        self._intervals.insert(i, (start, end, owner))

    @property
    def end(self) -> int:
        return self._intervals[-1][1] if self._intervals else 0


def earliest_common_slot(timelines: Sequence[Timeline], start: int, length: int) -> int:
    """Earliest ``t >= start`` at which every timeline is free for ``length``."""
    time = start
    moved = True
    while moved:
        moved = False
        for timeline in timelines:
            candidate = timeline.next_free(time, length)
            if candidate != time:
                time = candidate
                moved = True
    return time


class TactTrack:
    """Time ledger of one compute node.

    One timeline for the processor, and for every physical link one timeline
    per transfer direction. With ``duplex`` a link booking only conflicts
    with bookings of the same direction, otherwise with any booking on the
    link. ``horizon`` is an optional hard capacity in tacts.
    """

    def __init__(self, link_count: int = 1, horizon: Optional[int] = None):
        self.horizon = horizon
        self.processor = Timeline()
        self.outbound = [Timeline() for _ in range(link_count)]
        self.inbound = [Timeline() for _ in range(link_count)]

    @property
    def link_count(self) -> int:
        return len(self.outbound)

    def _link_timelines(self, link: int, direction: LinkDirection, duplex: bool) -> List[Timeline]:
        if duplex:
            if direction is LinkDirection.OUTBOUND:
                return [self.outbound[link]]
            return [self.inbound[link]]
        return [self.outbound[link], self.inbound[link]]

    def _check_horizon(self, end: int):
        if self.horizon is not None and end > self.horizon:
            raise CapacityError(end, self.horizon)

    def processor_is_busy(self, start: int, end: int) -> bool:
        return not self.processor.is_free(start, end)

    def next_free_processor(self, start: int, length: int) -> int:
        return self.processor.next_free(start, length)

    def link_is_busy(self, start: int, end: int, link: int, direction: LinkDirection, duplex: bool = False) -> bool:
        return any(not tl.is_free(start, end) for tl in self._link_timelines(link, direction, duplex))

    def next_free_link(self, start: int, length: int, link: int, direction: LinkDirection, duplex: bool = False) -> int:
        return earliest_common_slot(self._link_timelines(link, direction, duplex), start, length)

    def book_task(self, start: int, end: int, task_id: int):
        self._check_horizon(end)
        self.processor.book(start, end, task_id)

    def book_link(self, start: int, end: int, link: int, direction: LinkDirection, transmission: Any):
        self._check_horizon(end)
        if direction is LinkDirection.OUTBOUND:
            self.outbound[link].book(start, end, transmission)
        else:
            self.inbound[link].book(start, end, transmission)

    def tact(self, time: int) -> Tact:
        links = tuple(
            LinkState(outbound=self.outbound[i].owner_at(time), inbound=self.inbound[i].owner_at(time))
            for i in range(self.link_count)
        )
        return Tact(time=time, task_id=self.processor.owner_at(time), links=links)

    @property
    def end(self) -> int:
        """Last tact with any booking on this node."""
        return max([self.processor.end] + [tl.end for tl in self.outbound + self.inbound])
