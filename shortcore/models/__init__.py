from shortcore.models.url_mapping_model import UrlMapping, utc_now
from shortcore.models.write_result_model import WriteResult, WriteStatus


__all__ = [
    'UrlMapping',
    'WriteResult',
    'WriteStatus',
    'utc_now',
]
