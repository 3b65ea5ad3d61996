import logging
import threading

from beartype import beartype

from shortcore.dao.base import BlockAuthorityBaseDAO


logger = logging.getLogger(__name__)


class BlockAuthorityMemoryDAO(BlockAuthorityBaseDAO):
    """Single-process identifier block authority

    Only unique within one process: run the Redis authority when more than
    one node allocates identifiers.

    Args:
        start (int):
            Highest identifier already handed out. The first block starts right after it.
    """

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError(f'Start must be non-negative (given value: {start}).')
        self._high_water_mark = start
        self._lock = threading.Lock()
        self.reservations: list[tuple[int, int, int]] = []  # (node id, start, end)

    @beartype
    def reserve_block(self, node_id: int, size: int) -> tuple[int, int]:
        self._validate_request(node_id, size)
        with self._lock:
            start, end = self._checked_block(self._high_water_mark + size, size)
            self._high_water_mark = end
            self.reservations.append((node_id, start, end))

        logger.info('Reserved identifier block.', extra={'nodeId': node_id, 'start': start, 'end': end})
        return start, end
