from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Any, Optional


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class UrlMapping:
    """Represent a key -> target URL mapping.

    A mapping is never mutated in place: a different target requires a new key.

    Attributes:
        key (str):
            Short, globally unique key. Immutable once assigned.
        target (str):
            The original long URL that the key redirects to. Several keys may
            share the same target.
        created_at (datetime):
            Creation time in UTC.
        expires_at (Optional[datetime]):
            Expiry time in UTC, after which the mapping is no longer served.
            None if the mapping never expires.
        alias (bool):
            True if the caller chose the key (custom alias), False if it was
            derived from an allocated identifier.

    Example:
        >>> from datetime import timedelta
        >>> mapping = UrlMapping(
        ...     key='promo',
        ...     target='https://example.com/spring-sale',
        ...     alias=True,
        ...     expires_at=utc_now() + timedelta(days=30),
        ... )
        >>> mapping.is_expired()
        False
        >>> mapping.to_record()['alias']
        True
    """

    key: str
    target: str
    created_at: datetime = field(default_factory=utc_now)
    expires_at: Optional[datetime] = None
    alias: bool = False

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or utc_now()) >= self.expires_at

    def ttl(self, now: Optional[datetime] = None) -> Optional[float]:
        """Seconds left before expiry (never negative), or None if the mapping never expires."""
        if self.expires_at is None:
            return None
        return max(0.0, (self.expires_at - (now or utc_now())).total_seconds())

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted shard layout: key -> (target, created_at, expires_at, alias)."""
        return {
            'target': self.target,
            'created_at': self.created_at.isoformat(),
            'expires_at': self.expires_at.isoformat() if self.expires_at is not None else None,
            'alias': self.alias,
        }

    @classmethod
    def from_record(cls, key: str, record: dict[str, Any]) -> 'UrlMapping':
        expires_at = record.get('expires_at')
        return cls(
            key=key,
            target=record['target'],
            created_at=datetime.fromisoformat(record['created_at']),
            expires_at=datetime.fromisoformat(expires_at) if expires_at else None,
            alias=bool(record.get('alias', False)),
        )
