"""
core/constants.py 테스트

모든 경로가 pathlib.Path 타입이고, 상수가 정상적으로 접근 가능한지 확인
"""

from decimal import Decimal
from pathlib import Path

from core.constants import (
    PARTITION_KEY_SEPARATOR,
    PROJECT_ROOT,
    Defaults,
    Paths,
    Precision,
)


class TestProjectRoot:
    """PROJECT_ROOT 테스트"""

    def test_project_root_is_path(self) -> None:
        """PROJECT_ROOT가 Path 타입인지 확인"""
        assert isinstance(PROJECT_ROOT, Path)

    def test_project_root_is_absolute(self) -> None:
        """PROJECT_ROOT가 절대 경로인지 확인"""
        assert PROJECT_ROOT.is_absolute()

    def test_project_root_contains_core_directory(self) -> None:
        """PROJECT_ROOT에 core 디렉토리가 있는지 확인"""
        assert (PROJECT_ROOT / "core").exists()


class TestPaths:
    """Paths 테스트"""

    def test_all_paths_are_path_type(self) -> None:
        for path in (Paths.CONFIG_DIR, Paths.DATA_DIR, Paths.LOGS_DIR,
                     Paths.SETTINGS_FILE, Paths.LEDGER_DB):
            assert isinstance(path, Path)

    def test_paths_under_project_root(self) -> None:
        assert Paths.SETTINGS_FILE.parent == Paths.CONFIG_DIR
        assert Paths.LEDGER_DB.parent == Paths.DATA_DIR
        assert Paths.CONFIG_DIR.parent == PROJECT_ROOT


class TestDefaults:
    """Defaults / Precision 테스트"""

    def test_negative_stock_forbidden_by_default(self) -> None:
        assert Defaults.ALLOW_NEGATIVE_STOCK is False

    def test_posting_defaults(self) -> None:
        assert Defaults.LOCK_TIMEOUT_SEC > 0
        assert Defaults.CONFLICT_MAX_RETRIES >= 1

    def test_precision(self) -> None:
        assert Precision.RATE_PLACES == 9
        assert Precision.VALUE_PLACES == 2
        assert Precision.ZERO == Decimal("0")

    def test_separator(self) -> None:
        assert PARTITION_KEY_SEPARATOR == "|"
