"""
Tests for Settings loading (YAML + environment overrides).
"""
from decimal import Decimal

from ledgerflow.common.config import Settings


class TestSettings:

    def test_defaults(self):
        settings = Settings()
        assert settings.min_text_lines == 50
        assert settings.max_sync_bytes == 10 * 1024 * 1024
        assert settings.review_threshold == Decimal('10000')
        assert settings.balance_tolerance == Decimal('0.01')
        assert settings.analysis_retries == 1

    def test_load_yaml_with_env_overrides(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("min_text_lines: 20\nreview_threshold: 2500.50\nunknown_key: 1\n", encoding='utf-8')

        settings = Settings.load(str(path), environ={
            'LEDGERFLOW_ANALYSIS_TIMEOUT_SECONDS': '12',
            'LEDGERFLOW_MIN_TEXT_LINES': '30',
            'GEMINI_API_KEY': 'test-key',
        })

        assert settings.min_text_lines == 30
        assert settings.review_threshold == Decimal('2500.5')
        assert settings.analysis_timeout_seconds == 12.0
        assert settings.gemini_api_key == 'test-key'
        assert not hasattr(settings, 'unknown_key')

    def test_config_path_from_environment(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("max_sync_bytes: 1024\n", encoding='utf-8')

        settings = Settings.load(environ={'LEDGERFLOW_CONFIG': str(path)})
        assert settings.max_sync_bytes == 1024

    def test_missing_file_gives_defaults(self, tmp_path):
        settings = Settings.load(str(tmp_path / "absent.yaml"), environ={})
        assert settings == Settings()
