"""Unit tests for the configuration context."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from src.authlink.runtime.config.config_data import ConfigData
from src.authlink.runtime.context import (
    AppContext,
    get_config,
    get_context,
    set_config,
    with_context,
)


class TestContextManager:
    """Test the context manager functionality."""

    def test_default_context_available(self):
        """Should have a default context available."""
        context = get_context()
        config = get_config()

        assert isinstance(context, AppContext)
        assert isinstance(config, ConfigData)
        assert context.config is config

    def test_with_context_override_single_level(self):
        """Should override config for the duration of the context manager."""
        original_config = get_config()
        original_value = original_config.credentials.protect_last_credential

        test_config = ConfigData()
        test_config.credentials.protect_last_credential = not original_value

        with with_context(test_config):
            override_config = get_config()
            assert override_config.credentials.protect_last_credential is not original_value
            assert override_config is not original_config

        after_config = get_config()
        assert after_config.credentials.protect_last_credential is original_value
        assert after_config is original_config

    def test_partial_override_inherits_other_fields(self):
        """Fields that were not set on the override keep the current values."""
        original = get_config()

        level1 = ConfigData()
        level1.database.max_retries = 11
        with with_context(level1):
            level2 = ConfigData()
            level2.schema_evolution.auto_upgrade = True
            with with_context(level2):
                config = get_config()
                assert config.database.max_retries == 11
                assert config.schema_evolution.auto_upgrade is True
                assert config.database.url == original.database.url
            assert get_config().schema_evolution.auto_upgrade is original.schema_evolution.auto_upgrade
        assert get_config().database.max_retries == original.database.max_retries

    def test_with_context_no_override(self):
        original = get_config()
        with with_context(None):
            assert get_config() is original

    def test_rejects_non_config_override(self):
        with pytest.raises(ValueError):
            with with_context({"credentials": {}}):  # type: ignore[arg-type]
                pass

    def test_exception_restores_context(self):
        original = get_config()
        override = ConfigData()
        override.database.max_retries = 0

        with pytest.raises(RuntimeError):
            with with_context(override):
                raise RuntimeError("boom")

        assert get_config() is original

    def test_thread_isolation(self):
        """Overrides in one thread are invisible to another."""
        override = ConfigData()
        override.credentials.purge_unlinked_on_user_delete = False

        def read_in_thread() -> bool:
            return get_config().credentials.purge_unlinked_on_user_delete

        with with_context(override):
            with ThreadPoolExecutor(max_workers=1) as pool:
                seen = pool.submit(read_in_thread).result()
            assert get_config().credentials.purge_unlinked_on_user_delete is False

        assert seen is get_config().credentials.purge_unlinked_on_user_delete

    def test_set_config_replaces_whole_config(self):
        original = get_config()
        replacement = ConfigData()
        replacement.app.name = "replaced"
        try:
            set_config(replacement)
            assert get_config() is replacement
        finally:
            set_config(original)
