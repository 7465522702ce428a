"""Tests for the imagery provider factory.

Covers: get_provider, list_providers, register_provider, error handling,
and config-driven provider selection.
"""

from __future__ import annotations

import unittest
from unittest.mock import MagicMock

from progress_monitor.core.config import MonitoringConfig
from progress_monitor.core.constants import EARTH_ENGINE, MOCK, SENTINEL_HUB
from progress_monitor.models.imagery import ProviderConfig
from progress_monitor.providers.base import ImageryProvider, ProviderError
from progress_monitor.providers.factory import (
    _ADAPTER_REGISTRY,
    get_provider,
    list_providers,
    register_provider,
)
from progress_monitor.providers.mock import MockProvider
from progress_monitor.providers.sentinel_hub import SentinelHubProvider
from progress_monitor.utils.helpers import build_provider_config


class TestListProviders(unittest.TestCase):
    """list_providers returns known adapters."""

    def test_includes_builtin_providers(self) -> None:
        providers = list_providers()
        assert MOCK in providers
        assert EARTH_ENGINE in providers
        assert SENTINEL_HUB in providers

    def test_returns_sorted(self) -> None:
        providers = list_providers()
        assert providers == sorted(providers)


class TestGetProvider(unittest.TestCase):
    """get_provider creates the correct adapter instance."""

    def test_mock(self) -> None:
        provider = get_provider(MOCK)
        assert isinstance(provider, MockProvider)
        assert provider.name == MOCK

    def test_sentinel_hub_receives_object_store(self) -> None:
        store = MagicMock()
        provider = get_provider(SENTINEL_HUB, object_store=store)
        assert isinstance(provider, SentinelHubProvider)
        assert provider._require_object_store() is store

    def test_unknown_provider_raises(self) -> None:
        with self.assertRaises(ProviderError) as ctx:
            get_provider("nonexistent_provider")
        assert "nonexistent_provider" in str(ctx.exception)
        assert "Available:" in str(ctx.exception)

    def test_config_name_mismatch_raises(self) -> None:
        with self.assertRaises(ProviderError):
            get_provider(MOCK, ProviderConfig(name=SENTINEL_HUB))

    def test_custom_config_passed(self) -> None:
        cfg = ProviderConfig(name=MOCK, extra_params={"delay_seconds": "0"})
        provider = get_provider(MOCK, config=cfg)
        assert provider.config is cfg


class TestRegisterProvider(unittest.TestCase):
    """register_provider plugs in custom adapters."""

    def tearDown(self) -> None:
        _ADAPTER_REGISTRY.pop("custom_test", None)

    def test_register_and_get(self) -> None:
        class _Custom(MockProvider):
            pass

        register_provider("custom_test", lambda: _Custom)
        provider = get_provider("custom_test")
        assert isinstance(provider, _Custom)
        assert isinstance(provider, ImageryProvider)
        assert "custom_test" in list_providers()

    def test_empty_name_rejected(self) -> None:
        with self.assertRaises(ValueError):
            register_provider("", lambda: MockProvider)


class TestBuildProviderConfig(unittest.TestCase):
    """MonitoringConfig → ProviderConfig mapping."""

    def test_mock_when_flag_off(self) -> None:
        cfg = build_provider_config(MonitoringConfig(mock_delay_s=0.25))
        assert cfg.name == MOCK
        assert cfg.param("delay_seconds") == "0.25"

    def test_earth_engine_credentials(self) -> None:
        monitoring = MonitoringConfig(
            use_real_imagery=True,
            gee_project_id="proj",
            gee_service_account_key='{"client_email": "a@b"}',
            date_window_days=10,
        )
        cfg = build_provider_config(monitoring)
        assert cfg.name == EARTH_ENGINE
        assert cfg.param("project_id") == "proj"
        assert cfg.param("service_account_key") == '{"client_email": "a@b"}'
        assert cfg.date_window_days == 10
        assert "client_secret" not in cfg.extra_params

    def test_sentinel_hub_credentials(self) -> None:
        monitoring = MonitoringConfig(
            use_real_imagery=True,
            imagery_provider=SENTINEL_HUB,
            sentinel_client_id="id",
            sentinel_client_secret="secret",
        )
        cfg = build_provider_config(monitoring)
        assert cfg.name == SENTINEL_HUB
        assert cfg.extra_params == {"client_id": "id", "client_secret": "secret"}

    def test_explicit_name_override(self) -> None:
        cfg = build_provider_config(MonitoringConfig(), SENTINEL_HUB)
        assert cfg.name == SENTINEL_HUB
