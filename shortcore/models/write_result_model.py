from dataclasses import dataclass
from enum import StrEnum

from shortcore.models.url_mapping_model import UrlMapping


class WriteStatus(StrEnum):
    CREATED = 'created'
    ALREADY_EXISTS = 'already_exists'


# fmt: off
@dataclass(frozen=True)
class WriteResult:
    status: WriteStatus   # Outcome of the conditional write
    mapping: UrlMapping   # Stored record: ours on CREATED, the winner's on ALREADY_EXISTS
# fmt: on

    @property
    def created(self) -> bool:
        return self.status is WriteStatus.CREATED

    @classmethod
    def created_with(cls, mapping: UrlMapping) -> 'WriteResult':
        return cls(status=WriteStatus.CREATED, mapping=mapping)

    @classmethod
    def existing(cls, mapping: UrlMapping) -> 'WriteResult':
        return cls(status=WriteStatus.ALREADY_EXISTS, mapping=mapping)
