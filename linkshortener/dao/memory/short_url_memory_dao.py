"""In-process implementation of ShortURLBaseDAO

Keeps every record in a dictionary guarded by a re-entrant lock. Intended for
local development, single-process deployments and tests: data is lost when the
process exits.

Classes:
    ShortURLMemoryDAO:
        DAO storing ShortURLModel instances in process memory.

Example:
    >>> dao = ShortURLMemoryDAO()
    >>> dao.insert(ShortURLModel(target='https://example.com', shortcode='abc123'))
    <ShortURLMemoryDAO>
    >>> dao.exists('abc123')
    True
"""

import threading
from dataclasses import replace
from datetime import datetime

from beartype import beartype

from linkshortener.models import ClickModel, OwnerKind, ShortURLModel
from linkshortener.dao.base import ShortURLBaseDAO
from linkshortener.dao.exceptions import ShortURLAlreadyExistsError, ShortURLNotFoundError, ShortURLOwnershipError


class ShortURLMemoryDAO(ShortURLBaseDAO):
    """Dictionary-backed DAO

    Every method holds the lock for its whole read-check-write sequence, which
    makes insert() an atomic check-and-set and keeps hit() from recreating a
    concurrently deleted record.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._records: dict[str, ShortURLModel] = {}

    @beartype
    def insert(self, short_url: ShortURLModel, **kwargs) -> 'ShortURLMemoryDAO':
        with self._lock:
            if short_url.shortcode in self._records:
                raise ShortURLAlreadyExistsError(f"Short URL with code '{short_url.shortcode}' already exists.")
            self._records[short_url.shortcode] = short_url
        return self

    @beartype
    def get(self, shortcode: str, **kwargs) -> ShortURLModel:
        with self._lock:
            try:
                return self._records[shortcode]
            except KeyError:
                raise ShortURLNotFoundError(f"Short URL with code '{shortcode}' not found.") from None

    @beartype
    def exists(self, shortcode: str, **kwargs) -> bool:
        with self._lock:
            return shortcode in self._records

    @beartype
    def update(self, shortcode: str, owner_id: str, **fields) -> ShortURLModel:
        self._check_fields(fields)
        with self._lock:
            record = self._owned(shortcode, owner_id)
            updated = replace(record, **fields)
            self._records[shortcode] = updated
            return updated

    @beartype
    def delete(self, shortcode: str, owner_id: str, **kwargs) -> None:
        with self._lock:
            self._owned(shortcode, owner_id)
            del self._records[shortcode]

    @beartype
    def hit(self, shortcode: str, click: ClickModel, history_limit: int = 100, **kwargs) -> int:
        with self._lock:
            record = self.get(shortcode)
            history = (record.click_history + (click,))[-history_limit:]
            updated = replace(record, clicks=record.clicks + 1, click_history=history)
            self._records[shortcode] = updated
            return updated.clicks

    @beartype
    def delete_expired(self, before: datetime, **kwargs) -> int:
        with self._lock:
            expired = [shortcode for shortcode, record in self._records.items() if record.is_expired(before)]
            for shortcode in expired:
                del self._records[shortcode]
        return len(expired)

    @beartype
    def find(self, owner_kind: OwnerKind, owner_id: str, offset: int = 0, limit: int = 10, **kwargs) -> list[ShortURLModel]:
        if limit <= 0:
            return []
        with self._lock:
            owned = [self._without_history(record) for record in self._records.values() if self._belongs(record, owner_kind, owner_id)]
        owned.sort(key=lambda record: (record.created_at is not None, record.created_at), reverse=True)
        return owned[offset : offset + limit]

    @beartype
    def count(self, owner_kind: OwnerKind, owner_id: str, **kwargs) -> int:
        with self._lock:
            return sum(1 for record in self._records.values() if self._belongs(record, owner_kind, owner_id))

    @beartype
    def transfer(
        self,
        from_kind: OwnerKind,
        from_id: str,
        to_kind: OwnerKind,
        to_id: str,
        clear_expiry: bool = True,
        **kwargs,
    ) -> list[str]:
        moved = []
        with self._lock:
            for shortcode, record in list(self._records.items()):
                if not self._belongs(record, from_kind, from_id):
                    continue
                changes = {'owner_kind': to_kind, 'owner_id': to_id}
                if clear_expiry:
                    changes['expires_at'] = None
                self._records[shortcode] = replace(record, **changes)
                moved.append(shortcode)
        return moved

    def _owned(self, shortcode: str, owner_id: str) -> ShortURLModel:
        record = self.get(shortcode)
        if not record.owned_by(owner_id):
            raise ShortURLOwnershipError(f"Short URL with code '{shortcode}' is not owned by '{owner_id}'.")
        return record

    @staticmethod
    def _belongs(record: ShortURLModel, owner_kind: OwnerKind, owner_id: str) -> bool:
        return record.owner_kind == owner_kind and record.owner_id == owner_id

    @staticmethod
    def _without_history(record: ShortURLModel) -> ShortURLModel:
        return replace(record, click_history=())

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
