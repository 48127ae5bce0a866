"""Tests for configuration loading."""

import pytest

from config.core_config import DEFAULT_CONFIG, CoreConfig, deep_merge, load_core_config


class TestCoreConfig:

    def test_defaults(self):
        config = CoreConfig.from_dict({})

        assert config.request_delay == 1.0
        assert config.retry_attempts == 3
        assert config.retry_backoff == 1.0
        assert config.timeout == 10.0
        assert config.primary_ttl_seconds == 3600
        assert config.backup_ttl_seconds == 3600 * 24
        assert config.section_list_ttl_seconds == 14400
        assert config.max_query_length == 100
        assert config.quality_thresholds.max_fallback_rate == 0.05
        assert config.request_headers['User-Agent'].startswith('HIG-Docs-Core')

    def test_camel_case_aliases(self):
        config = CoreConfig.from_dict({'requestDelayMs': 250, 'retryAttempts': 5, 'timeoutMs': 2000})
        assert config.request_delay == 0.25
        assert config.retry_attempts == 5
        assert config.timeout == 2.0

    def test_nested_sections_are_deep_merged(self):
        config = CoreConfig.from_dict({'quality': {'fallback': {'min_real_length': 50}}})

        assert config.fallback_heuristics.min_real_length == 50
        assert 'this page requires javascript' in config.fallback_heuristics.strong_indicators
        assert config.quality_capacity == 1000

    def test_trailing_slash_is_stripped(self):
        assert CoreConfig.from_dict({'base_url': 'https://example.com/hig/'}).base_url == 'https://example.com/hig'

    @pytest.mark.parametrize("overrides", [
        {'retry_attempts': 0},
        {'request_delay_ms': -1},
        {'timeout_ms': 0},
        {'backup_ttl_multiplier': 0},
        {'search': {'default_limit': 60}},
        {'quality': {'sla_target': 95}},
        {'cache': {'max_entries': 1}},
    ])
    def test_invalid_values(self, overrides):
        with pytest.raises(ValueError):
            CoreConfig.from_dict(overrides)

    def test_deep_merge_does_not_mutate(self):
        merged = deep_merge(DEFAULT_CONFIG, {'search': {'max_limit': 20}})
        assert merged['search']['max_limit'] == 20
        assert merged['search']['default_limit'] == 10
        assert DEFAULT_CONFIG['search']['max_limit'] == 50


class TestLoadCoreConfig:

    def test_load_yaml_file(self, tmp_path):
        path = tmp_path / 'higdocs.yaml'
        path.write_text("retryAttempts: 4\nlogging:\n  level: DEBUG\n", encoding='utf-8')

        config = load_core_config(str(path))

        assert config.retry_attempts == 4
        assert config.log_level == 'DEBUG'

    def test_environment_variable(self, tmp_path, monkeypatch):
        path = tmp_path / 'from-env.yaml'
        path.write_text("primary_ttl_seconds: 60\n", encoding='utf-8')
        monkeypatch.setenv('HIGDOCS_CONFIG', str(path))

        assert load_core_config().primary_ttl_seconds == 60

    def test_missing_file_uses_defaults(self, tmp_path):
        assert load_core_config(str(tmp_path / 'missing.yaml')).retry_attempts == 3

    def test_malformed_yaml_uses_defaults(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text("retryAttempts: [4\n", encoding='utf-8')
        assert load_core_config(str(path)).retry_attempts == 3

    def test_non_mapping_yaml_uses_defaults(self, tmp_path):
        path = tmp_path / 'list.yaml'
        path.write_text("- a\n- b\n", encoding='utf-8')
        assert load_core_config(str(path)).retry_attempts == 3
