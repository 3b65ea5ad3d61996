from shortcore.dao.memory.mapping_memory_dao import MappingMemoryDAO
from shortcore.dao.memory.block_authority_memory_dao import BlockAuthorityMemoryDAO


__all__ = [
    'MappingMemoryDAO',
    'BlockAuthorityMemoryDAO',
]
