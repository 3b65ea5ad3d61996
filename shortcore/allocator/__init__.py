from shortcore.allocator.base import IdentifierAllocator
from shortcore.allocator.block_allocator import BlockIdentifierAllocator
from shortcore.allocator.composite_allocator import CompositeIdentifierAllocator


__all__ = [
    'IdentifierAllocator',
    'BlockIdentifierAllocator',
    'CompositeIdentifierAllocator',
]
