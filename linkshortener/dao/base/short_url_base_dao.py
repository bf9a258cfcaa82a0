"""Abstract base class for ShortURL data access objects (DAOs).

This class establishes a consistent contract for all ShortURL DAO implementations,
regardless of the underlying storage mechanism (e.g., Redis, in-process memory,
PostgreSQL).

Responsibilities:
    - Provide an interface for inserting, retrieving, mutating and deleting ShortURLModel objects.
    - Act as the final arbiter of short code uniqueness (insert must be atomic).
    - Enforce ownership on mutation and deletion.
    - Record clicks into a bounded click history.
    - Standardize error handling across multiple data store implementations.

Example:
    Typical usage with a datastore-specific implementation:

        >>> from linkshortener.models import ShortURLModel
        >>> from linkshortener.dao.memory import ShortURLMemoryDAO

        >>> dao = ShortURLMemoryDAO()

        >>> short_url = ShortURLModel(
        ...     target="https://example.com/blog/article-123",
        ...     shortcode="a1b2c3",
        ... )
        >>> dao.insert(short_url)

        >>> retrieved = dao.get("a1b2c3")
        >>> print(retrieved.target)
        https://example.com/blog/article-123

        >>> dao.exists("a1b2c3")
        True
"""

from abc import ABC, abstractmethod
from datetime import datetime

from linkshortener.models import ClickModel, OwnerKind, ShortURLModel


class ShortURLBaseDAO(ABC):
    """Interface for ShortURL data access objects (DAOs).

    Every implementation satisfies `CodeExistenceChecker` through `exists()`,
    so a DAO can be handed to `ShortCodeGenerator.generate_unique()` directly.

    Methods:
        insert(short_url: ShortURLModel, **kwargs) -> ShortURLBaseDAO:
            Insert a new ShortURLModel into the data store.
            Raises ShortURLAlreadyExistsError if the short code already exists.

        get(shortcode: str, **kwargs) -> ShortURLModel:
            Retrieve a ShortURLModel by short code.
            Raises ShortURLNotFoundError if the entry does not exist.

        exists(shortcode: str, **kwargs) -> bool:
            Check whether a short code is taken.

        update(shortcode: str, owner_id: str, **fields) -> ShortURLModel:
            Apply mutable field changes to a record owned by owner_id.
            Raises ShortURLNotFoundError / ShortURLOwnershipError.

        delete(shortcode: str, owner_id: str, **kwargs) -> None:
            Delete a record owned by owner_id.
            Raises ShortURLNotFoundError / ShortURLOwnershipError.

        hit(shortcode: str, click: ClickModel, history_limit: int, **kwargs) -> int:
            Record a click and return the new click count.
            Raises ShortURLNotFoundError if the entry does not exist.

        delete_expired(before: datetime, **kwargs) -> int:
            Physically delete every record that expired before the given instant.

        find(owner_kind, owner_id, offset, limit, **kwargs) -> list[ShortURLModel]:
            List an owner's records, newest first.

        count(owner_kind, owner_id, **kwargs) -> int:
            Count an owner's records.

        transfer(from_kind, from_id, to_kind, to_id, clear_expiry, **kwargs) -> list[str]:
            Move every record of one owner to another; return the moved short codes.

    All methods raise DataStoreError on connection or I/O failure.

    Subclassing:
        Datastore-specific implementations (e.g., ShortURLRedisDAO or
        ShortURLMemoryDAO) must extend this class and implement all
        abstract methods.
    """

    MUTABLE_FIELDS = frozenset({'target', 'is_active', 'expires_at'})

    @abstractmethod
    def insert(self, short_url: ShortURLModel, **kwargs) -> 'ShortURLBaseDAO':
        """Insert a new ShortURLModel into the data store.

        Args:
            short_url (ShortURLModel):
                The ShortURLModel instance to be inserted.

            **kwargs:
                Additional keyword arguments, used by data store.

        Returns:
            ShortURLBaseDAO: self (for method chaining)

        Raises:
            ShortURLAlreadyExistsError:
                If a ShortURLModel with the same short code already exists

            DataStoreError:
                If there is an error in the data store.
        """
        pass

    @abstractmethod
    def get(self, shortcode: str, **kwargs) -> ShortURLModel:
        """Retrieve a ShortURLModel from the data store by its short code.

        Args:
            shortcode (str):
                The short code of the ShortURLModel to be retrieved.

            **kwargs:
                Additional keyword arguments, used by data store.

        Returns:
            ShortURLModel: The ShortURLModel instance.

        Raises:
            ShortURLNotFoundError:
                If no ShortURLModel with the given short code exists.

            DataStoreError:
                If there is an error in the data store.
        """
        pass

    @abstractmethod
    def exists(self, shortcode: str, **kwargs) -> bool:
        """Check whether a short code is already taken.

        Args:
            shortcode (str):
                The short code to look up.

        Returns:
            bool: True if a record with this short code exists.

        Raises:
            DataStoreError:
                If there is an error in the data store.
        """
        pass

    @abstractmethod
    def update(self, shortcode: str, owner_id: str, **fields) -> ShortURLModel:
        """Apply changes to the mutable fields of an owned record.

        Only `target`, `is_active` and `expires_at` may change. The short code
        itself is immutable.

        Args:
            shortcode (str):
                The short code of the record to update.

            owner_id (str):
                The caller's identifier. Must match the record owner.

            **fields:
                New values for the mutable fields.

        Returns:
            ShortURLModel: The updated record.

        Raises:
            ValueError:
                If a field outside MUTABLE_FIELDS is given.

            ShortURLNotFoundError:
                If no record with the given short code exists.

            ShortURLOwnershipError:
                If the record belongs to somebody else.

            DataStoreError:
                If there is an error in the data store.
        """
        pass

    @abstractmethod
    def delete(self, shortcode: str, owner_id: str, **kwargs) -> None:
        """Delete an owned record.

        Raises:
            ShortURLNotFoundError:
                If no record with the given short code exists.

            ShortURLOwnershipError:
                If the record belongs to somebody else.

            DataStoreError:
                If there is an error in the data store.
        """
        pass

    @abstractmethod
    def hit(self, shortcode: str, click: ClickModel, history_limit: int = 100, **kwargs) -> int:
        """Record a click on a short URL.

        The click count is incremented and the click appended to the history,
        dropping the oldest entries beyond `history_limit`. A record deleted
        concurrently must not be recreated by this method.

        Returns:
            int: The click count after this click.

        Raises:
            ShortURLNotFoundError:
                If no record with the given short code exists.

            DataStoreError:
                If there is an error in the data store.
        """
        pass

    @abstractmethod
    def delete_expired(self, before: datetime, **kwargs) -> int:
        """Delete every record whose expiration is earlier than `before`.

        Returns:
            int: Number of deleted records.

        Raises:
            DataStoreError:
                If there is an error in the data store.
        """
        pass

    @abstractmethod
    def find(self, owner_kind: OwnerKind, owner_id: str, offset: int = 0, limit: int = 10, **kwargs) -> list[ShortURLModel]:
        """List an owner's records, newest first."""
        pass

    @abstractmethod
    def count(self, owner_kind: OwnerKind, owner_id: str, **kwargs) -> int:
        """Count an owner's records."""
        pass

    @abstractmethod
    def transfer(
        self,
        from_kind: OwnerKind,
        from_id: str,
        to_kind: OwnerKind,
        to_id: str,
        clear_expiry: bool = True,
        **kwargs,
    ) -> list[str]:
        """Move every record owned by (from_kind, from_id) to (to_kind, to_id).

        Args:
            clear_expiry (bool):
                If True, remove the expiration of every moved record.

        Returns:
            list[str]: Short codes of the moved records.
        """
        pass

    @classmethod
    def _check_fields(cls, fields: dict) -> None:
        unknown = set(fields) - cls.MUTABLE_FIELDS
        if unknown:
            raise ValueError(f'Fields {sorted(unknown)} cannot be updated (allowed: {sorted(cls.MUTABLE_FIELDS)}).')
