"""Physical link contention resolution for single hop transfers."""

import logging
from typing import NamedTuple, Tuple

from .ledger import LinkDirection
from .models import ComputeNode, DataTransmission

logger = logging.getLogger(__name__)


class LinkSlot(NamedTuple):
    """A resolved transfer interval and the links it uses at both ends."""

    start: int
    end: int
    source_link: int
    target_link: int


class LinkContentionResolver:
    """Finds the earliest collision free interval for a hop between neighbours."""

    def __init__(self, duplex: bool = False):
        self.duplex = duplex

    def _best_link(self, node: ComputeNode, start: int, length: int, direction: LinkDirection) -> Tuple[int, int]:
        """Link of ``node`` that frees up first from ``start``, lowest number on ties.

        Returns:
            Tuple of (start time, link number)
        """
        best = None
        for link in node.links:
            candidate = node.ledger.next_free_link(start, length, link.link_number, direction, self.duplex)
            if best is None or candidate < best[0]:
                best = (candidate, link.link_number)
        return best

    def resolve(self, source: ComputeNode, target: ComputeNode, start: int, length: int) -> LinkSlot:
        """Earliest interval of ``length`` tacts at or after ``start``.

        The source links are searched first (outbound), then the target links
        (inbound) from the source's best time. If the target pushed the
        interval forward and the chosen source link is busy there, both
        passes repeat from the later time.
        """
        time = start
        while True:
            source_time, source_link = self._best_link(source, time, length, LinkDirection.OUTBOUND)
            target_time, target_link = self._best_link(target, source_time, length, LinkDirection.INBOUND)
            if not source.ledger.link_is_busy(
                target_time, target_time + length, source_link, LinkDirection.OUTBOUND, self.duplex
            ):
                return LinkSlot(target_time, target_time + length, source_link, target_link)
            time = target_time

    def commit(
        self,
        source: ComputeNode,
        target: ComputeNode,
        slot: LinkSlot,
        source_task: int,
        target_task: int,
    ) -> DataTransmission:
        """Book ``slot`` on both nodes and record the transmission on both links."""
        transmission = DataTransmission(
            source_task=source_task,
            target_task=target_task,
            source_node=source.node_id,
            target_node=target.node_id,
            start=slot.start,
            end=slot.end,
            source_link=slot.source_link,
            target_link=slot.target_link,
        )
        source.ledger.book_link(slot.start, slot.end, slot.source_link, LinkDirection.OUTBOUND, transmission)
        target.ledger.book_link(slot.start, slot.end, slot.target_link, LinkDirection.INBOUND, transmission)
        source.links[slot.source_link].transmissions.append(transmission)
        target.links[slot.target_link].transmissions.append(transmission)
        logger.debug(
            "Transmission %s->%s on nodes %s->%s links %s->%s at [%s, %s)",
            source_task, target_task, source.node_id, target.node_id,
            slot.source_link, slot.target_link, slot.start, slot.end,
        )
        return transmission

    def transmit(
        self,
        source: ComputeNode,
        target: ComputeNode,
        start: int,
        length: int,
        source_task: int,
        target_task: int,
    ) -> DataTransmission:
        return self.commit(source, target, self.resolve(source, target, start, length), source_task, target_task)
