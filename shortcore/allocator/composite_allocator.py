"""Coordination-free composite identifier allocator

Identifiers are bit-packed from a coarse timestamp, the node id and a local
sequence, so nodes never talk to each other. The price is a sparse key space:
keys are longer than with range reservation.

Layout (63 bits used, the top bit stays 0):

    | 41 bits                      | 10 bits  | 12 bits   |
    | milliseconds since epoch     | node id  | sequence  |

A node issues at most 4096 identifiers per millisecond; when the sequence is
exhausted it waits for the next millisecond. Identifiers are non-decreasing
per node.
"""

import logging
import threading
import time
from collections.abc import Callable

from shortcore.allocator.base import IdentifierAllocator
from shortcore.constants import Defaults
from shortcore.exceptions import ClockDriftError, IdentifierSpaceExhaustedError


logger = logging.getLogger(__name__)


def _wall_clock_ms() -> int:
    return time.time_ns() // 1_000_000


class CompositeIdentifierAllocator(IdentifierAllocator):
    """Snowflake-style (timestamp, node, sequence) identifiers

    Args:
        node_id (int):
            Unique node id in [0, 1023].
        epoch_ms (int):
            Custom epoch in unix milliseconds.
        max_clock_drift_ms (int):
            Backwards clock steps up to this size are waited out; larger ones
            raise ClockDriftError.
        clock (Callable[[], int]):
            Returns unix milliseconds. Injectable for tests.
    """

    TIMESTAMP_BITS = 41
    NODE_ID_BITS = 10
    SEQUENCE_BITS = 12
    MAX_TIMESTAMP = (1 << TIMESTAMP_BITS) - 1
    MAX_NODE_ID = (1 << NODE_ID_BITS) - 1
    MAX_SEQUENCE = (1 << SEQUENCE_BITS) - 1
    NODE_ID_SHIFT = SEQUENCE_BITS
    TIMESTAMP_SHIFT = NODE_ID_BITS + SEQUENCE_BITS

    def __init__(
        self,
        node_id: int,
        epoch_ms: int = Defaults.COMPOSITE_EPOCH_MS,
        max_clock_drift_ms: int = Defaults.MAX_CLOCK_DRIFT_MS,
        clock: Callable[[], int] = _wall_clock_ms,
    ):
        if not 0 <= node_id <= self.MAX_NODE_ID:
            raise ValueError(f'Node id must be in [0, {self.MAX_NODE_ID}] (given value: {node_id}).')

        self.node_id = node_id
        self.epoch_ms = epoch_ms
        self.max_clock_drift_ms = max_clock_drift_ms
        self._clock = clock
        self._last_timestamp = -1
        self._sequence = 0
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            timestamp = self._timestamp()

            if timestamp < self._last_timestamp:
                drift = self._last_timestamp - timestamp
                if drift > self.max_clock_drift_ms:
                    logger.critical('Clock moved backwards beyond tolerance.', extra={'nodeId': self.node_id, 'driftMs': drift})
                    raise ClockDriftError(f'Clock moved backwards by {drift} ms (tolerance: {self.max_clock_drift_ms} ms).')
                logger.warning('Clock moved backwards. Waiting it out.', extra={'nodeId': self.node_id, 'driftMs': drift})
                timestamp = self._wait_until(self._last_timestamp)

            if timestamp == self._last_timestamp:
                self._sequence = (self._sequence + 1) & self.MAX_SEQUENCE
                if self._sequence == 0:
                    # Sequence exhausted within this millisecond
                    timestamp = self._wait_until(self._last_timestamp + 1)
            else:
                self._sequence = 0

            self._last_timestamp = timestamp
            return (timestamp << self.TIMESTAMP_SHIFT) | (self.node_id << self.NODE_ID_SHIFT) | self._sequence

    @classmethod
    def unpack(cls, identifier: int) -> tuple[int, int, int]:
        """Split an identifier into (timestamp offset ms, node id, sequence)"""
        return (
            identifier >> cls.TIMESTAMP_SHIFT,
            (identifier >> cls.NODE_ID_SHIFT) & cls.MAX_NODE_ID,
            identifier & cls.MAX_SEQUENCE,
        )

    def _timestamp(self) -> int:
        timestamp = self._clock() - self.epoch_ms
        if timestamp < 0:
            raise ClockDriftError(f'Clock is before the allocator epoch ({self.epoch_ms}).')
        if timestamp > self.MAX_TIMESTAMP:
            raise IdentifierSpaceExhaustedError('Composite identifier timestamp bits are exhausted.')
        return timestamp

    def _wait_until(self, target: int) -> int:
        timestamp = self._timestamp()
        while timestamp < target:
            time.sleep(0.0001)
            timestamp = self._timestamp()
        return timestamp
