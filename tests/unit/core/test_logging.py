"""
core/logging.py 테스트
"""

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.logging import get_log_file_path, setup_logging


class TestSetupLogging:
    """setup_logging 테스트"""

    def test_creates_log_file(self, temp_dir: Path, restore_root_logger: logging.Logger) -> None:
        log_dir = temp_dir / "logs"

        setup_logging("verify", log_dir=log_dir)
        logging.getLogger("engine.posting").info("전기 완료")

        log_file = get_log_file_path("verify", log_dir)
        assert log_file.exists()
        assert "전기 완료" in log_file.read_text(encoding="utf-8")

    def test_handlers_not_duplicated(self, temp_dir: Path, restore_root_logger: logging.Logger) -> None:
        setup_logging("verify", log_dir=temp_dir)
        setup_logging("verify", log_dir=temp_dir)

        file_handlers = [
            h for h in restore_root_logger.handlers if isinstance(h, TimedRotatingFileHandler)
        ]
        assert len(file_handlers) == 1
        assert len(restore_root_logger.handlers) == 2

    def test_noisy_loggers_quieted(self, temp_dir: Path, restore_root_logger: logging.Logger) -> None:
        setup_logging("verify", log_dir=temp_dir)

        assert logging.getLogger("aiosqlite").level == logging.WARNING

    def test_console_level(self, temp_dir: Path, restore_root_logger: logging.Logger) -> None:
        setup_logging("verify", console_level=logging.ERROR, log_dir=temp_dir)

        console = [
            h for h in restore_root_logger.handlers
            if not isinstance(h, TimedRotatingFileHandler)
        ]
        assert console[0].level == logging.ERROR


def test_get_log_file_path(temp_dir: Path) -> None:
    assert get_log_file_path("engine", temp_dir) == temp_dir / "engine.log"
