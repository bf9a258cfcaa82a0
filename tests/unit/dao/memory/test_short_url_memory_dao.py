import threading
from datetime import datetime, timedelta, UTC

import pytest
from beartype.roar import BeartypeCallHintParamViolation

from linkshortener.models import ClickModel, OwnerKind, ShortURLModel
from linkshortener.dao.exceptions import ShortURLAlreadyExistsError, ShortURLNotFoundError, ShortURLOwnershipError
from linkshortener.dao.memory import ShortURLMemoryDAO
from linkshortener.utils.shortener import CodeExistenceChecker


NOW = datetime(2025, 10, 15, 12, 0, 0, tzinfo=UTC)


def user_link(shortcode: str, owner_id: str = 'user-1', **kwargs) -> ShortURLModel:
    return ShortURLModel(
        target=f'https://example.com/{shortcode}',
        shortcode=shortcode,
        owner_kind=OwnerKind.USER,
        owner_id=owner_id,
        created_at=kwargs.pop('created_at', NOW),
        **kwargs,
    )


class TestShortURLMemoryDAO:
    dao: ShortURLMemoryDAO

    @pytest.fixture(autouse=True)
    def setup(self, memory_dao: ShortURLMemoryDAO):
        self.dao = memory_dao

    def test_dao_is_an_existence_checker(self):
        assert isinstance(self.dao, CodeExistenceChecker)

    def test_insert_and_get(self):
        short_url = user_link('abc123')

        assert self.dao.insert(short_url) is self.dao
        assert self.dao.get('abc123') == short_url
        assert self.dao.exists('abc123') is True
        assert self.dao.exists('zzz999') is False

    def test_insert_duplicate(self):
        self.dao.insert(user_link('abc123'))

        with pytest.raises(ShortURLAlreadyExistsError, match="Short URL with code 'abc123' already exists."):
            self.dao.insert(user_link('abc123', owner_id='user-2'))

        assert self.dao.get('abc123').owner_id == 'user-1'

    def test_insert_invalid_type(self):
        with pytest.raises((TypeError, BeartypeCallHintParamViolation)):
            self.dao.insert({'shortcode': 'abc123'})

    def test_get_missing(self):
        with pytest.raises(ShortURLNotFoundError, match="Short URL with code 'nope' not found."):
            self.dao.get('nope')

    def test_concurrent_inserts_of_the_same_code_have_one_winner(self):
        barrier = threading.Barrier(8)
        outcomes = []

        def insert(owner_id: str):
            barrier.wait()
            try:
                self.dao.insert(user_link('race01', owner_id=owner_id))
                outcomes.append('ok')
            except ShortURLAlreadyExistsError:
                outcomes.append('dup')

        threads = [threading.Thread(target=insert, args=(f'user-{i}',)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert outcomes.count('ok') == 1
        assert outcomes.count('dup') == 7

    # -------------------------------
    # Update & delete
    # -------------------------------

    def test_update_mutable_fields(self):
        self.dao.insert(user_link('abc123', expires_at=NOW + timedelta(days=1)))

        updated = self.dao.update('abc123', 'user-1', target='https://new.example.com', is_active=False, expires_at=None)

        assert updated.target == 'https://new.example.com'
        assert updated.is_active is False
        assert updated.expires_at is None
        assert self.dao.get('abc123') == updated

    def test_update_enforces_ownership(self):
        self.dao.insert(user_link('abc123'))

        with pytest.raises(ShortURLOwnershipError):
            self.dao.update('abc123', 'user-2', target='https://evil.example.com')

        assert self.dao.get('abc123').target == 'https://example.com/abc123'

    def test_update_rejects_immutable_fields(self):
        self.dao.insert(user_link('abc123'))
        with pytest.raises(ValueError, match='cannot be updated'):
            self.dao.update('abc123', 'user-1', clicks=99)

    def test_update_missing(self):
        with pytest.raises(ShortURLNotFoundError):
            self.dao.update('nope', 'user-1', target='https://example.com')

    def test_delete(self):
        self.dao.insert(user_link('abc123'))

        self.dao.delete('abc123', 'user-1')

        assert self.dao.exists('abc123') is False

    def test_delete_enforces_ownership(self):
        self.dao.insert(user_link('abc123'))

        with pytest.raises(ShortURLOwnershipError):
            self.dao.delete('abc123', 'user-2')

        assert self.dao.exists('abc123') is True

    def test_ownership_error_is_a_not_found_error(self):
        anonymous = ShortURLModel(target='https://example.com', shortcode='anon01')
        self.dao.insert(anonymous)

        with pytest.raises(ShortURLNotFoundError):
            self.dao.delete('anon01', 'user-1')

    # -------------------------------
    # Click recording
    # -------------------------------

    def test_hit_appends_click_and_trims_history(self):
        self.dao.insert(user_link('abc123'))

        for minute in range(5):
            clicks = self.dao.hit('abc123', ClickModel(timestamp=NOW + timedelta(minutes=minute)), history_limit=3)

        record = self.dao.get('abc123')
        assert clicks == 5
        assert record.clicks == 5
        assert [click.timestamp for click in record.click_history] == [NOW + timedelta(minutes=m) for m in (2, 3, 4)]

    def test_hit_does_not_recreate_deleted_record(self):
        self.dao.insert(user_link('abc123'))
        self.dao.delete('abc123', 'user-1')

        with pytest.raises(ShortURLNotFoundError):
            self.dao.hit('abc123', ClickModel(timestamp=NOW))

        assert self.dao.exists('abc123') is False

    # -------------------------------
    # Expiry cleanup & owner index
    # -------------------------------

    def test_delete_expired(self):
        self.dao.insert(user_link('past01', expires_at=NOW - timedelta(seconds=1)))
        self.dao.insert(user_link('exact1', expires_at=NOW))
        self.dao.insert(user_link('future', expires_at=NOW + timedelta(seconds=1)))
        self.dao.insert(user_link('never1'))

        assert self.dao.delete_expired(before=NOW) == 1
        assert self.dao.exists('past01') is False
        assert len(self.dao) == 3

    def test_find_and_count_newest_first(self):
        for minute in range(5):
            self.dao.insert(user_link(f'link{minute:02}', created_at=NOW + timedelta(minutes=minute)))
        self.dao.insert(user_link('other1', owner_id='user-2'))

        first_page = self.dao.find(OwnerKind.USER, 'user-1', offset=0, limit=2)
        last_page = self.dao.find(OwnerKind.USER, 'user-1', offset=4, limit=2)

        assert [record.shortcode for record in first_page] == ['link04', 'link03']
        assert [record.shortcode for record in last_page] == ['link00']
        assert self.dao.count(OwnerKind.USER, 'user-1') == 5
        assert self.dao.count(OwnerKind.GUEST, 'user-1') == 0

    def test_transfer(self):
        guest = ShortURLModel(
            target='https://example.com',
            shortcode='guest1',
            owner_kind=OwnerKind.GUEST,
            owner_id='guest-1',
            expires_at=NOW + timedelta(days=7),
        )
        self.dao.insert(guest)
        self.dao.insert(user_link('mine01'))

        moved = self.dao.transfer(OwnerKind.GUEST, 'guest-1', OwnerKind.USER, 'user-1')

        assert moved == ['guest1']
        record = self.dao.get('guest1')
        assert record.owner_kind is OwnerKind.USER
        assert record.owner_id == 'user-1'
        assert record.expires_at is None
        assert self.dao.count(OwnerKind.USER, 'user-1') == 2
        assert self.dao.count(OwnerKind.GUEST, 'guest-1') == 0
