# tests/unit/test_logger.py
"""
Unit tests for StructuredLogger output files and severities
"""
import json
import logging

import pytest

from config.config_manager import LoggingConfig
from monitoring.logger import ANALYSIS_LOG, StructuredLogger
from utils.errors import CoinNotFoundError, ProviderUnavailableError


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers = handlers
    root.setLevel(level)


def read_entries(path):
    for handler in logging.getLogger().handlers:
        handler.flush()
    if not path.exists():
        return []
    return [json.loads(line) for line in path.read_text().splitlines() if line.strip()]


@pytest.mark.unit
@pytest.mark.usefixtures("restore_root_logger")
class TestStructuredLogger:

    @pytest.fixture
    def structured(self, tmp_path):
        config = LoggingConfig(log_dir=str(tmp_path), log_outputs=["file"], log_format="json")
        return StructuredLogger("analyzer", config)

    def test_analysis_summary_is_json(self, structured, tmp_path):
        structured.log_analysis({
            'ticker': 'UNI', 'overall_score': 7.45, 'classification': 'GREEN',
            'metadata': {'analysis_duration_ms': 120, 'onchain_tier': 'large'},
        })

        entry = read_entries(tmp_path / "analyzer.log")[-1]
        assert entry['level'] == "ANALYSIS"
        assert entry['logger'] == "analyzer.analysis"
        assert entry['message'] == "Analysis UNI: 7.45 (GREEN)"
        assert entry['analysis']['onchain_tier'] == "large"
        assert entry['analysis']['from_cache'] is False

    def test_provider_failure_reaches_error_log(self, structured, tmp_path):
        structured.log_error(ProviderUnavailableError("coingecko", "HTTP 500"),
                             {'function': 'analyze', 'ticker': 'UNI'})

        entry = read_entries(tmp_path / "analyzer_errors.log")[-1]
        assert entry['level'] == "ERROR"
        assert entry['error']['error_type'] == "ProviderUnavailableError"
        assert entry['error']['context']['ticker'] == "UNI"
        assert 'traceback' not in entry['error']

    def test_unknown_coin_is_only_a_warning(self, structured, tmp_path):
        structured.log_error(CoinNotFoundError("ZZZ"), {'function': 'analyze'})

        assert read_entries(tmp_path / "analyzer_errors.log") == []
        entry = read_entries(tmp_path / "analyzer.log")[-1]
        assert entry['level'] == "WARNING"
        assert entry['message'] == "Rejected in analyze: Coin not found: ZZZ"

    def test_unexpected_error_carries_traceback(self, structured, tmp_path):
        try:
            raise KeyError("scores")
        except KeyError as e:
            structured.log_error(e, {'function': 'compare'})

        entry = read_entries(tmp_path / "analyzer_errors.log")[-1]
        assert "Traceback" in entry['error']['traceback']

    def test_debug_overrides_configured_level(self, tmp_path):
        config = LoggingConfig(log_level="WARNING", log_dir=str(tmp_path), log_outputs=["console"])

        StructuredLogger("analyzer", config, debug=True)
        assert logging.getLogger().level == logging.DEBUG

        StructuredLogger("analyzer", config)
        assert logging.getLogger().level == logging.WARNING
        assert not (tmp_path / "analyzer.log").exists()

    def test_analysis_level_sits_between_info_and_warning(self):
        assert logging.INFO < ANALYSIS_LOG < logging.WARNING
        assert logging.getLevelName(ANALYSIS_LOG) == "ANALYSIS"
