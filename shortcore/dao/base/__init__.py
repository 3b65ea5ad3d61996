from shortcore.dao.base.mapping_base_dao import MappingBaseDAO
from shortcore.dao.base.block_authority_base_dao import BlockAuthorityBaseDAO


__all__ = [
    'MappingBaseDAO',
    'BlockAuthorityBaseDAO',
]
