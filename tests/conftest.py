"""
pytest 공통 fixture 정의

임시 디렉토리, 테스트용 stock.yaml, 스키마가 초기화된 DB, 루트 로거 원복
"""

import logging
import tempfile
from pathlib import Path

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter, init_schema


@pytest.fixture
def temp_dir() -> Path:
    """OS 독립적인 임시 디렉토리 생성"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_settings_file(temp_dir: Path) -> Path:
    """테스트용 stock.yaml 파일 생성"""
    settings_content = """# 테스트용 stock.yaml
database:
  path: data/test_stock.db

valuation:
  rate_precision: 6
  value_precision: 2

posting:
  lock_timeout_sec: 2.5
  conflict_max_retries: 5
  conflict_backoff_sec: 0.01

negative_stock:
  allow: false
  overrides:
    - warehouse: "WIP"
      allow: true
    - item: "ITEM-NEG"
      warehouse: "Stores"
      allow: true

logging:
  level: debug
"""
    settings_path = temp_dir / "stock.yaml"
    settings_path.write_text(settings_content, encoding="utf-8")
    return settings_path


@pytest.fixture
def temp_settings_file_invalid_level(temp_dir: Path) -> Path:
    """잘못된 로그 레벨의 stock.yaml 파일 생성"""
    settings_content = """logging:
  level: verbose
"""
    settings_path = temp_dir / "stock_invalid.yaml"
    settings_path.write_text(settings_content, encoding="utf-8")
    return settings_path


@pytest_asyncio.fixture
async def ledger_db(temp_dir: Path) -> SQLiteAdapter:
    """스키마가 초기화된 임시 DB"""
    adapter = SQLiteAdapter(temp_dir / "test_ledger.db")
    await adapter.connect()
    await init_schema(adapter)
    yield adapter
    await adapter.close()


@pytest.fixture
def restore_root_logger():
    """테스트 후 루트 로거 핸들러 원복"""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
