"""Unit tests for configuration utilities in config.py."""

import io
import json
from io import BytesIO
from typing import cast
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError
from pytest import MonkeyPatch

from linkshortener.types import AppConfig
from linkshortener.utils import config
from linkshortener.constants import ENV, TTL, Defaults
from linkshortener.exceptions import BadConfigurationError, MissingEnvironmentVariableError


class TestConfigUtilities:
    appconfig_payload: AppConfig

    @pytest.fixture
    def appconfig_payload(self) -> AppConfig:
        # fmt: off
        return cast(AppConfig, {
            'build': 42,
            'active_backend': 'redis',
            'backends': {
                'redis': {
                    'host': 'monkey',
                    'port': 6380,
                    'db': 3
                }
            },
            'shortener': {'shortcode_length': 7, 'max_retries': 3, 'guest_ttl_days': 1},
            'cache': {'max_size': 50, 'ttl_seconds': 120},
        })
        # fmt: on

    @pytest.fixture(autouse=True)
    def setup(self, monkeypatch: MonkeyPatch, appconfig_payload: AppConfig) -> None:
        monkeypatch.setenv(ENV.App.APP_ENV, 'dev')
        monkeypatch.setenv(ENV.AppConfig.APP_ID, 'app123')
        monkeypatch.setenv(ENV.AppConfig.ENV_ID, 'env123')
        monkeypatch.setenv(ENV.AppConfig.PROFILE_ID, 'prof123')
        monkeypatch.delenv(ENV.AppConfig.AGENT_URL, raising=False)
        monkeypatch.delenv(ENV.App.AWS_SAM_LOCAL, raising=False)

        self.appconfig_payload = appconfig_payload

    def mock_appconfig(self, monkeypatch: MonkeyPatch) -> MagicMock:
        monkey_bytes = BytesIO(json.dumps(self.appconfig_payload).encode('utf-8'))
        mock_appconfig = MagicMock()
        mock_appconfig.start_configuration_session.return_value = {'InitialConfigurationToken': 'monkey_token'}
        mock_appconfig.get_latest_configuration.return_value = {'Configuration': monkey_bytes}
        monkeypatch.setattr(config.boto3, 'client', lambda service: mock_appconfig)
        return mock_appconfig

    def test_load_config_from_appconfig(self, monkeypatch: MonkeyPatch) -> None:
        mock_appconfig = self.mock_appconfig(monkeypatch)

        result = config.load_config()

        assert result == self.appconfig_payload
        mock_appconfig.start_configuration_session.assert_called_once_with(
            ApplicationIdentifier='app123',
            EnvironmentIdentifier='env123',
            ConfigurationProfileIdentifier='prof123',
        )
        mock_appconfig.get_latest_configuration.assert_called_once_with(ConfigurationToken='monkey_token')

    def test_appconfig_error_propagates(self, monkeypatch: MonkeyPatch) -> None:
        mock_appconfig = MagicMock()
        mock_appconfig.start_configuration_session.side_effect = ClientError(
            {'Error': {'Code': 'ResourceNotFoundException', 'Message': 'Not found'}},
            'StartConfigurationSession',
        )
        monkeypatch.setattr(config.boto3, 'client', lambda service: mock_appconfig)

        with pytest.raises(ClientError):
            config.load_config()

    def test_missing_environment(self, monkeypatch: MonkeyPatch) -> None:
        monkeypatch.delenv(ENV.AppConfig.PROFILE_ID)
        with pytest.raises(MissingEnvironmentVariableError, match='APPCONFIG_PROFILE_ID'):
            config.load_config()

    def test_load_config_from_local_agent(self, monkeypatch: MonkeyPatch) -> None:
        monkeypatch.setenv(ENV.App.APP_ENV, 'local')
        monkeypatch.setenv(ENV.App.APP_NAME, 'linkshortener')
        monkeypatch.setenv(ENV.AppConfig.AGENT_URL, 'http://localhost:2772')
        opened = []

        def urlopen(url, timeout):
            opened.append(url)
            return io.BytesIO(json.dumps(self.appconfig_payload).encode('utf-8'))

        monkeypatch.setattr(config.urllib.request, 'urlopen', urlopen)
        monkeypatch.setattr(config.boto3, 'client', MagicMock(side_effect=AssertionError('AppConfig must not be called')))

        assert config.load_config() == self.appconfig_payload
        assert opened == ['http://localhost:2772/applications/linkshortener/environments/local/configurations/backend-config']

    @pytest.mark.parametrize('agent_url', ['file:///etc/passwd', 'http://evil.example.com:2772', 'http://localhost:8080'])
    def test_local_agent_url_is_validated(self, monkeypatch: MonkeyPatch, agent_url: str) -> None:
        monkeypatch.setenv(ENV.App.APP_ENV, 'local')
        monkeypatch.setenv(ENV.AppConfig.AGENT_URL, agent_url)

        with pytest.raises(BadConfigurationError):
            config.load_config()

    def test_load_settings(self, monkeypatch: MonkeyPatch) -> None:
        self.mock_appconfig(monkeypatch)

        settings = config.load_settings()

        assert settings.active_backend == 'redis'
        assert settings.backend == {'host': 'monkey', 'port': 6380, 'db': 3}
        assert settings.shortcode_length == 7
        assert settings.max_retries == 3
        assert settings.guest_ttl_seconds == 86_400
        assert settings.cache_max_size == 50
        assert settings.cache_ttl_seconds == 120
        assert settings.cache_sweep_interval_seconds == Defaults.CACHE_SWEEP_INTERVAL
        assert settings.cleanup_interval_seconds == Defaults.CLEANUP_INTERVAL
        assert settings.build == 42

    def test_load_settings_without_appconfig(self, monkeypatch: MonkeyPatch) -> None:
        monkeypatch.delenv(ENV.AppConfig.APP_ID)

        settings = config.load_settings()

        assert settings == config.Settings()
        assert settings.active_backend == 'memory'
        assert settings.guest_ttl_seconds == TTL.GUEST_LINK


class TestSettings:
    def test_empty_document_uses_defaults(self):
        assert config.Settings.from_document({}) == config.Settings()

    @pytest.mark.parametrize(
        'document, message',
        [
            ({'active_backend': 'dynamodb'}, 'Unsupported backend'),
            ({'active_backend': 'redis'}, "Missing 'backends.redis'"),
            ({'shortener': {'shortcode_length': 0}}, 'shortcode_length must be positive'),
            ({'shortener': {'max_retries': -1}}, 'max_retries must be non-negative'),
            ({'cache': {'max_size': 'lots'}}, 'Malformed configuration document'),
            ({'cache': []}, 'Malformed configuration document'),
        ],
    )
    def test_bad_documents(self, document, message):
        with pytest.raises(BadConfigurationError, match=message):
            config.Settings.from_document(document)


@pytest.mark.parametrize(
    'name, env, expected',
    [
        ('linkshortener', 'prod', 'linkshortener:prod'),
        ('linkshortener', None, 'linkshortener:local'),
        (None, 'dev', None),
    ],
)
def test_app_prefix(monkeypatch: MonkeyPatch, name, env, expected):
    for var, value in ((ENV.App.APP_NAME, name), (ENV.App.APP_ENV, env)):
        if value is None:
            monkeypatch.delenv(var, raising=False)
        else:
            monkeypatch.setenv(var, value)

    assert config.app_prefix() == expected
