"""
Tests for the colored per-name logger
"""

import logging
import os

from colorama import Fore

from hash_ring import HashRing
from ring_config import RingConfig
from ring_logger import Logger, _ConsoleFormatter


def read_log(logger, log_dir):
    for handler in logger.handlers:
        handler.flush()
    with open(os.path.join(log_dir, "log.log")) as f:
        return f.read()


class TestLogger:
    def test_logger_is_cached(self):
        assert Logger.get_logger("ring-test") is Logger.get_logger("ring-test")

    def test_writes_to_configured_dir(self, tmp_path):
        logger = Logger.get_logger("ring-file-test", log_dir=str(tmp_path), level="debug")
        logger.debug("placed a node")

        assert logger.level == logging.DEBUG
        assert not logger.propagate
        assert "placed a node" in read_log(logger, tmp_path)
        Logger.shutdown("ring-file-test")

    def test_shutdown_closes_handlers(self, tmp_path):
        logger = Logger.get_logger("ring-shutdown-test", log_dir=str(tmp_path))
        Logger.shutdown("ring-shutdown-test")

        assert logger.handlers == []
        assert Logger.get_logger("ring-shutdown-test", log_dir=str(tmp_path)) is logger
        assert len(logger.handlers) == 2
        Logger.shutdown("ring-shutdown-test")
        Logger.shutdown("never-created")

    def test_color_is_stable(self):
        assert Logger._color_for_name("hash_ring") == Logger._color_for_name("hash_ring")

    def test_console_colors_warnings(self):
        formatter = _ConsoleFormatter(Fore.BLUE)
        warning = logging.LogRecord("ring", logging.WARNING, __file__, 1, "collision", None, None)
        info = logging.LogRecord("ring", logging.INFO, __file__, 1, "placed", None, None)

        assert formatter.format(warning).startswith(Fore.YELLOW)
        assert not formatter.format(info).startswith(Fore.YELLOW)
        assert Fore.BLUE + "ring" in formatter.format(info)

    def test_ring_logs_collisions(self, tmp_path):
        logger = Logger.get_logger("ring-collision-test", log_dir=str(tmp_path))
        ring = HashRing(RingConfig(ring_size=1, replica_count=2), logger=logger)
        ring.add_server("A")

        text = read_log(logger, tmp_path)
        assert "Added virtual node: A:1 at position: 1" in text
        assert "Collision detected for virtual node: A:2 at position: 1" in text
        Logger.shutdown("ring-collision-test")

    def test_key_resolution_logged_only_at_debug(self, tmp_path):
        logger = Logger.get_logger("ring-debug-test", log_dir=str(tmp_path), level="debug")
        ring = HashRing(RingConfig(ring_size=1, replica_count=1), logger=logger)
        ring.add_server("A")
        ring.get_server_for_key("Apple")
        assert "Key: Apple (pos: 1) is mapped to node position: 1" in read_log(logger, tmp_path)

        logger.setLevel(logging.INFO)
        ring.get_server_for_key("Banana")
        assert "Key: Banana" not in read_log(logger, tmp_path)
        Logger.shutdown("ring-debug-test")
