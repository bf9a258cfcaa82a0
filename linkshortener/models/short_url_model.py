from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Optional


class OwnerKind(StrEnum):
    """Who a short URL belongs to."""

    USER = 'user'
    GUEST = 'guest'
    NONE = 'none'


@dataclass(frozen=True)
class ClickModel:
    """A single recorded redirect.

    Attributes:
        timestamp (datetime):
            When the redirect was served.
        ip (Optional[str]):
            Client IP address as seen by the routing layer.
        user_agent (Optional[str]):
            Client User-Agent header.
        referer (Optional[str]):
            Client Referer header.
    """

    timestamp: datetime
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    referer: Optional[str] = None


@dataclass(frozen=True)
class ShortURLModel:
    """Represent a shortened URL mapping.

    Attributes:
        target (str):
            The original long URL that the short code redirects to.
        shortcode (str):
            The unique short identifier representing the shortened URL.
            Immutable once the record is created.
        owner_kind (OwnerKind):
            Whether the link belongs to a user, a guest or nobody.
        owner_id (Optional[str]):
            Opaque identifier of the owner (user id or guest session id).
        created_at (Optional[datetime]):
            Creation time.
        expires_at (Optional[datetime]):
            Expiration time, after which the short URL is logically absent
            even if it is still physically stored. None means no expiry.
        is_active (bool):
            Inactive links are never resolved.
        clicks (int):
            Total number of recorded redirects.
        click_history (tuple[ClickModel, ...]):
            Most recent clicks, oldest first, bounded by the store.
        custom (bool):
            True when the short code is a user-chosen slug.

    Example:
        >>> from datetime import datetime, timedelta, UTC
        >>> url = ShortURLModel(
        ...     target="https://example.com/article/123",
        ...     shortcode="abc123",
        ...     expires_at=datetime.now(UTC) + timedelta(days=7),
        ... )
        >>> url.is_expired(datetime.now(UTC))
        False
    """

    target: str
    shortcode: str
    owner_kind: OwnerKind = OwnerKind.NONE
    owner_id: Optional[str] = None
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    is_active: bool = True
    clicks: int = 0
    click_history: tuple[ClickModel, ...] = field(default=())
    custom: bool = False

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now

    def owned_by(self, owner_id: Optional[str]) -> bool:
        return owner_id is not None and self.owner_id == owner_id
