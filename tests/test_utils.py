"""
Tests for logging setup, timers and metrics
"""
import io
import logging
from unittest.mock import patch

import pytest
from prometheus_client import REGISTRY

from metrics import ACTIVE_CRAWLS, get_metrics_export
from utils import ColoredFormatter, Timer, configure_logging, format_size_py


class TestConfigureLogging:
    """Tests for configure_logging"""

    def test_plain_output(self):
        stream = io.StringIO()
        configure_logging(level=logging.INFO, colorize=False, stream=stream)
        logging.getLogger('main').info('ID:    12; path: levels/doom/a-c/bogus.zip')
        logging.getLogger('main').debug('not shown')
        output = stream.getvalue()
        assert 'INFO' in output
        assert 'bogus.zip' in output
        assert 'not shown' not in output

    def test_colored_output(self):
        stream = io.StringIO()
        configure_logging(level=logging.DEBUG, colorize=True, stream=stream)
        logging.getLogger('main').error('Too many API request errors!')
        assert ColoredFormatter.COLORS['ERROR'] in stream.getvalue()

    def test_returns_structlog_logger(self):
        logger = configure_logging(stream=io.StringIO(), json_output=True)
        assert hasattr(logger, 'bind')


class TestTimer:
    """Tests for Timer"""

    def test_elapsed(self):
        with patch('utils.time.perf_counter', side_effect=[10.0, 12.5]):
            timer = Timer()
            timer.start('extract')
            assert timer.stop('extract') == 2.5

    def test_stop_without_start(self):
        with pytest.raises(KeyError):
            Timer().stop('never')


class TestHelpers:
    """Tests for small helpers and metrics"""

    def test_format_size(self):
        assert format_size_py(None) == '0 B'
        assert format_size_py(512) == '512.00 B'
        assert format_size_py(2048) == '2.00 KB'

    def test_metrics_export(self):
        body, content_type = get_metrics_export()
        assert b'wadcatalog_crawl_requests_total' in body
        assert content_type.startswith('text/plain')

    def test_active_crawl_tracker(self):
        before = REGISTRY.get_sample_value('wadcatalog_active_crawls')
        with ACTIVE_CRAWLS.track_inprogress():
            assert REGISTRY.get_sample_value('wadcatalog_active_crawls') == before + 1
        assert REGISTRY.get_sample_value('wadcatalog_active_crawls') == before
