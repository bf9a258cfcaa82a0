import pytest

from linkshortener.dao.redis import RedisKeySchema
from linkshortener.models import OwnerKind


class TestRedisKeySchema:
    @pytest.mark.parametrize(
        'prefix, expected',
        [
            ('linkshortener:prod', 'linkshortener:prod:links:abc123'),
            (None, 'links:abc123'),
        ],
    )
    def test_link_key(self, prefix, expected):
        assert RedisKeySchema(prefix=prefix).link_key('abc123') == expected

    def test_link_clicks_key(self):
        assert RedisKeySchema(prefix='app:dev').link_clicks_key('abc123') == 'app:dev:links:abc123:clicks'

    def test_owner_links_key(self):
        keys = RedisKeySchema(prefix='app:dev')
        assert keys.owner_links_key(OwnerKind.USER, 'user-1') == 'app:dev:owners:user:user-1:links'
        assert keys.owner_links_key(OwnerKind.GUEST, 'guest-1') == 'app:dev:owners:guest:guest-1:links'

    def test_expiry_index_key(self):
        assert RedisKeySchema().expiry_index_key() == 'links:expiry'

    def test_invalid_prefix_type(self):
        with pytest.raises(TypeError, match='Prefix must be of type string'):
            RedisKeySchema(prefix=42)
