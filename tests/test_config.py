"""
Unit tests for configuration management.
"""

import json
import logging
from unittest.mock import patch

from ohs.config import DEFAULT_CONFIG, configure_logging, load_config, save_config


class TestLoadConfig:
    """Test cases for load_config."""

    def test_missing_file_returns_defaults(self, tmp_path):
        with patch('ohs.config.CONFIG_FILE', str(tmp_path / "missing.json")):
            assert load_config() == DEFAULT_CONFIG

    def test_invalid_json_returns_defaults(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with patch('ohs.config.CONFIG_FILE', str(path)):
            assert load_config() == DEFAULT_CONFIG

    def test_file_values_override_defaults(self, tmp_path):
        path = tmp_path / "ohs_config.json"
        path.write_text(json.dumps({'TRIAL_DURATION_DAYS': 7, 'ALLOW_MASTER_SIGNATURE': False}))
        with patch('ohs.config.CONFIG_FILE', str(path)):
            config = load_config()
        assert config['TRIAL_DURATION_DAYS'] == 7
        assert config['ALLOW_MASTER_SIGNATURE'] is False
        assert config['STORAGE_CODEC'] == 'obfuscation'

    def test_defaults_not_mutated(self, tmp_path):
        with patch('ohs.config.CONFIG_FILE', str(tmp_path / "missing.json")):
            load_config()['TRIAL_DURATION_DAYS'] = 1
        assert DEFAULT_CONFIG['TRIAL_DURATION_DAYS'] == 30


class TestSaveConfig:
    """Test cases for save_config."""

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "ohs_config.json"
        with patch('ohs.config.CONFIG_FILE', str(path)):
            assert save_config({'HEARING_THRESHOLD_DB': 20.0}) is True
            assert load_config()['HEARING_THRESHOLD_DB'] == 20.0

    def test_save_failure(self, tmp_path):
        with patch('ohs.config.CONFIG_FILE', str(tmp_path / "no_dir" / "c.json")):
            assert save_config({}) is False


class TestConfigureLogging:
    """Test cases for configure_logging."""

    def test_level_passed_to_basic_config(self):
        with patch('ohs.config.logging.basicConfig') as basic_config:
            configure_logging("debug")
        assert basic_config.call_args.kwargs['level'] == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        with patch('ohs.config.logging.basicConfig') as basic_config:
            configure_logging("chatty")
        assert basic_config.call_args.kwargs['level'] == logging.INFO
