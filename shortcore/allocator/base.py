from abc import ABC, abstractmethod


class IdentifierAllocator(ABC):
    """Produces globally unique 64-bit identifiers.

    `next()` is callable concurrently from any number of threads, on any
    number of nodes, and never returns the same value twice system-wide.
    """

    @abstractmethod
    def next(self) -> int:
        pass
