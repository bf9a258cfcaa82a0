"""Short URL lifecycle management

UrlRegistry owns every write to short URL records: it assigns short codes,
applies the expiry policy, enforces ownership through the store and keeps the
hot cache consistent by invalidating it after each store write.

Classes:
    UrlRegistry:
        Create, update, delete, list and migrate short URLs.

    UrlPage:
        One page of an owner's short URLs.

    UrlStats:
        Click analytics for one short URL.

Example:
    >>> registry = UrlRegistry(dao, cache, generator)
    >>> record = registry.create('https://example.com', owner_kind=OwnerKind.USER, owner_id='u-1')
    >>> registry.update(record.shortcode, 'u-1', target='https://example.org').target
    'https://example.org'
    >>> registry.delete(record.shortcode, 'u-1')
"""

import math
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional

from linkshortener.constants import (
    TTL,
    Defaults,
    SHORTCODE_INSERT_RACE,
    SHORT_URL_CREATED,
    SHORT_URL_UPDATED,
    SHORT_URL_DELETED,
    GUEST_LINKS_MIGRATED,
)
from linkshortener.dao.base import ShortURLBaseDAO
from linkshortener.dao.cache import HotCache
from linkshortener.dao.exceptions import ShortURLAlreadyExistsError, ShortURLNotFoundError, ShortURLOwnershipError
from linkshortener.exceptions import ConflictError, NotFoundError, OwnershipError, ValidationError
from linkshortener.models import ClickModel, OwnerKind, ShortURLModel
from linkshortener.types import Clock
from linkshortener.utils.helpers import is_http_url, utcnow
from linkshortener.utils.shortener import ShortCodeGenerator


logger = logging.getLogger(__name__)

ACCESS_DENIED_MESSAGE = 'URL not found or access denied'


class _Unset:
    def __repr__(self) -> str:
        return 'UNSET'


UNSET: Any = _Unset()


def _check_expiry(expires_at: Any, now: datetime) -> None:
    """Reject expirations that are not timezone-aware datetimes in the future"""
    if not isinstance(expires_at, datetime) or expires_at.utcoffset() is None:
        raise ValidationError(f'Expiration must be a timezone-aware datetime (given value: {expires_at!r}).')
    if expires_at <= now:
        raise ValidationError('Expiration must be in the future.')


@dataclass(frozen=True)
class UrlPage:
    items: tuple[ShortURLModel, ...]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit)


@dataclass(frozen=True)
class UrlStats:
    """Click analytics for one short URL.

    Attributes:
        clicks (int):
            Total recorded clicks, including ones trimmed from the history.
        clicks_by_date (dict[str, int]):
            Clicks per ISO date, computed over the retained click history.
        recent_clicks (tuple[ClickModel, ...]):
            Most recent clicks in chronological order, oldest first.
    """

    shortcode: str
    target: str
    clicks: int
    created_at: Optional[datetime]
    expires_at: Optional[datetime]
    clicks_by_date: dict[str, int] = field(default_factory=dict)
    recent_clicks: tuple[ClickModel, ...] = ()


class UrlRegistry:
    """Write side of the link shortener.

    Every mutation writes the durable store first and invalidates the hot
    cache second, before returning. A redirect that starts after a mutation
    returns can therefore never observe the previous target.

    Attributes:
        dao (ShortURLBaseDAO):
            Durable store. Also acts as the generator's existence checker.
        cache (HotCache):
            Hot cache shared with RedirectResolver.
        generator (ShortCodeGenerator):
            Short code generator.
        guest_ttl (int):
            Lifetime of guest-owned short URLs in seconds.
    """

    def __init__(
        self,
        dao: ShortURLBaseDAO,
        cache: HotCache,
        generator: ShortCodeGenerator,
        clock: Clock = utcnow,
        guest_ttl: int = TTL.GUEST_LINK,
    ):
        self.dao = dao
        self.cache = cache
        self.generator = generator
        self.guest_ttl = guest_ttl
        self._clock = clock

    def create(
        self,
        target: str,
        *,
        custom_slug: Optional[str] = None,
        owner_kind: OwnerKind = OwnerKind.NONE,
        owner_id: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> ShortURLModel:
        """Create a short URL

        Args:
            target (str):
                Absolute http(s) URL to redirect to.
            custom_slug (Optional[str]):
                User-chosen short code. A random code is generated when omitted.
            owner_kind (OwnerKind):
                Who owns the new record.
            owner_id (Optional[str]):
                Owner identifier. Required unless owner_kind is NONE.
            expires_at (Optional[datetime]):
                Expiration requested by the caller. Ignored for guests, whose
                records always expire `guest_ttl` seconds after creation.

        Returns:
            ShortURLModel: the stored record.

        Raises:
            ValidationError:
                If the target, the slug, the owner or the expiration is invalid.
            ConflictError:
                If the custom slug is taken, or no free code could be allocated.
            DataStoreError:
                If the durable store is unreachable.
        """
        if not is_http_url(target):
            raise ValidationError(f"Invalid URL '{target}': only absolute http and https URLs can be shortened.")
        if owner_kind == OwnerKind.NONE and owner_id is not None:
            raise ValidationError('Anonymous short URLs cannot have an owner id.')
        if owner_kind != OwnerKind.NONE and not owner_id:
            raise ValidationError(f"Short URLs owned by a {owner_kind} require an owner id.")

        now = self._clock()
        if owner_kind == OwnerKind.GUEST:
            expires_at = now + timedelta(seconds=self.guest_ttl)
        elif expires_at is not None:
            _check_expiry(expires_at, now)

        def new_record(shortcode: str, custom: bool) -> ShortURLModel:
            return ShortURLModel(
                target=target.strip(),
                shortcode=shortcode,
                owner_kind=owner_kind,
                owner_id=owner_id,
                created_at=now,
                expires_at=expires_at,
                custom=custom,
            )

        if custom_slug is not None:
            record = self._insert_custom(new_record(custom_slug, custom=True))
        else:
            record = self._insert_generated(new_record)

        logger.info(
            'Short URL created.',
            extra={'shortcode': record.shortcode, 'event': SHORT_URL_CREATED, 'owner_kind': owner_kind, 'custom': record.custom},
        )
        return record

    def update(
        self,
        shortcode: str,
        owner_id: str,
        *,
        target: Any = UNSET,
        is_active: Any = UNSET,
        expires_at: Any = UNSET,
    ) -> ShortURLModel:
        """Change the target, the active flag and/or the expiration of an owned short URL

        Omitted fields are left untouched; `expires_at=None` removes the expiration.

        Raises:
            ValidationError:
                If the new target is not an http(s) URL or the new expiration is in the past.
            NotFoundError:
                If the short code does not exist.
            OwnershipError:
                If the short URL belongs to somebody else.
            DataStoreError:
                If the durable store is unreachable.
        """
        fields = {}
        if target is not UNSET:
            if not is_http_url(target):
                raise ValidationError(f"Invalid URL '{target}': only absolute http and https URLs can be shortened.")
            fields['target'] = target.strip()
        if is_active is not UNSET:
            fields['is_active'] = bool(is_active)
        if expires_at is not UNSET:
            if expires_at is not None:
                _check_expiry(expires_at, self._clock())
            fields['expires_at'] = expires_at

        try:
            record = self.dao.update(shortcode, owner_id, **fields)
        except ShortURLOwnershipError:
            raise OwnershipError(ACCESS_DENIED_MESSAGE) from None
        except ShortURLNotFoundError:
            raise NotFoundError(ACCESS_DENIED_MESSAGE) from None
        finally:
            self.cache.invalidate(shortcode)

        logger.info('Short URL updated.', extra={'shortcode': shortcode, 'event': SHORT_URL_UPDATED, 'fields': sorted(fields)})
        return record

    def delete(self, shortcode: str, owner_id: str) -> None:
        """Delete an owned short URL

        Raises:
            NotFoundError:
                If the short code does not exist.
            OwnershipError:
                If the short URL belongs to somebody else.
            DataStoreError:
                If the durable store is unreachable.
        """
        try:
            self.dao.delete(shortcode, owner_id)
        except ShortURLOwnershipError:
            raise OwnershipError(ACCESS_DENIED_MESSAGE) from None
        except ShortURLNotFoundError:
            raise NotFoundError(ACCESS_DENIED_MESSAGE) from None
        finally:
            self.cache.invalidate(shortcode)

        logger.info('Short URL deleted.', extra={'shortcode': shortcode, 'event': SHORT_URL_DELETED})

    def stats(self, shortcode: str, owner_id: str) -> UrlStats:
        """Return click analytics for an owned short URL

        Raises:
            NotFoundError / OwnershipError:
                Same rules as update().
        """
        try:
            record = self.dao.get(shortcode)
        except ShortURLNotFoundError:
            raise NotFoundError(ACCESS_DENIED_MESSAGE) from None
        if not record.owned_by(owner_id):
            raise OwnershipError(ACCESS_DENIED_MESSAGE)

        by_date = Counter(click.timestamp.date().isoformat() for click in record.click_history)
        recent = tuple(record.click_history[-Defaults.RECENT_CLICKS :])
        return UrlStats(
            shortcode=record.shortcode,
            target=record.target,
            clicks=record.clicks,
            created_at=record.created_at,
            expires_at=record.expires_at,
            clicks_by_date=dict(sorted(by_date.items())),
            recent_clicks=recent,
        )

    def migrate_guest(self, guest_id: str, user_id: str) -> int:
        """Hand every short URL of a guest session over to a user account

        Migrated records lose their guest expiration.

        Returns:
            int: number of migrated short URLs.
        """
        moved = self.dao.transfer(OwnerKind.GUEST, guest_id, OwnerKind.USER, user_id, clear_expiry=True)
        for shortcode in moved:
            self.cache.invalidate(shortcode)

        logger.info(
            'Migrated %s guest short URLs.',
            len(moved),
            extra={'event': GUEST_LINKS_MIGRATED, 'guest_id': guest_id, 'user_id': user_id, 'migrated': len(moved)},
        )
        return len(moved)

    def list(self, owner_kind: OwnerKind, owner_id: str, page: int = 1, limit: int = Defaults.PAGE_SIZE) -> UrlPage:
        """Return one page of an owner's short URLs, newest first"""
        if page < 1:
            raise ValidationError(f'Page must be a positive integer (given value: {page}).')
        if limit < 1:
            raise ValidationError(f'Limit must be a positive integer (given value: {limit}).')

        total = self.dao.count(owner_kind, owner_id)
        items = self.dao.find(owner_kind, owner_id, offset=(page - 1) * limit, limit=limit)
        return UrlPage(items=tuple(items), page=page, limit=limit, total=total)

    def _insert_custom(self, record: ShortURLModel) -> ShortURLModel:
        if not self.generator.validate_custom_alias(record.shortcode):
            raise ValidationError(
                f"Invalid custom slug '{record.shortcode}': use 3 to 50 letters, digits, '-' or '_'.",
            )
        if self.dao.exists(record.shortcode):
            raise ConflictError(f"Custom slug '{record.shortcode}' is already taken.")

        try:
            self.dao.insert(record)
        except ShortURLAlreadyExistsError:
            raise ConflictError(f"Custom slug '{record.shortcode}' is already taken.") from None
        return record

    def _insert_generated(self, new_record) -> ShortURLModel:
        for attempt in range(1, Defaults.SHORTCODE_INSERT_ATTEMPTS + 1):
            record = new_record(self.generator.generate_unique(self.dao), custom=False)
            try:
                self.dao.insert(record)
            except ShortURLAlreadyExistsError:
                logger.warning(
                    'Generated short code was taken concurrently, retry %s/%s.',
                    attempt,
                    Defaults.SHORTCODE_INSERT_ATTEMPTS,
                    extra={'shortcode': record.shortcode, 'event': SHORTCODE_INSERT_RACE},
                )
            else:
                return record

        raise ConflictError('Could not allocate a unique short code. Try again.')
