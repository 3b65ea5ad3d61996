"""Abstract base class for identifier block authorities.

A block authority hands out contiguous, never overlapping ranges of 64-bit
identifiers to nodes. Any implementation satisfying exactly-once block
issuance is acceptable.
"""

from abc import ABC, abstractmethod

from shortcore.constants import MAX_IDENTIFIER
from shortcore.exceptions import IdentifierSpaceExhaustedError


class BlockAuthorityBaseDAO(ABC):
    """Interface for identifier block authorities.

    Methods:
        reserve_block(node_id: int, size: int) -> tuple[int, int]:
            Reserve `size` identifiers for a node and return the inclusive
            (start, end) range. No two calls, from any node, ever return
            overlapping ranges.
            Raises IdentifierSpaceExhaustedError past 2**64 - 1.
            Raises DataStoreError on connection or write failure.
    """

    @abstractmethod
    def reserve_block(self, node_id: int, size: int) -> tuple[int, int]:
        pass

    @staticmethod
    def _validate_request(node_id: int, size: int) -> None:
        if node_id < 0:
            raise ValueError(f'Node id must be non-negative (given value: {node_id}).')
        if size < 1:
            raise ValueError(f'Block size must be positive (given value: {size}).')

    @staticmethod
    def _checked_block(end: int, size: int) -> tuple[int, int]:
        """Turn the authority's new high-water mark into an inclusive range"""
        if end > MAX_IDENTIFIER:
            raise IdentifierSpaceExhaustedError(f'Block ending at {end} exceeds the 64-bit identifier space.')
        return end - size + 1, end
