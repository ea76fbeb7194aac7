"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from decimal import Decimal
from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: core/constants.py → stockledger/)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class Defaults:
    """기본값 상수"""

    COMPANY: str = "default"
    OWNER: str = "system"

    LOG_LEVEL: str = "INFO"

    # 파티션 락 대기 시간 (초)
    LOCK_TIMEOUT_SEC: float = 10.0

    # ConcurrentReconciliationConflict 재시도
    CONFLICT_MAX_RETRIES: int = 3
    CONFLICT_BACKOFF_SEC: float = 0.05

    # 음수 재고 허용 여부 (기본: 금지)
    ALLOW_NEGATIVE_STOCK: bool = False


class Precision:
    """Decimal 자릿수

    valuation_rate는 재계산이 수천 번 반복되어도 오차가 누적되지 않도록
    충분한 자릿수를 유지하고, stock_value는 통화 단위로 반올림.
    """

    RATE_PLACES: int = 9
    VALUE_PLACES: int = 2

    ZERO: Decimal = Decimal("0")


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    DATA_DIR: Path = PROJECT_ROOT / "data"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    # 설정 파일
    SETTINGS_FILE: Path = CONFIG_DIR / "stock.yaml"

    # DB 파일
    LEDGER_DB: Path = DATA_DIR / "stock_ledger.db"


# 파티션 키 구분자 (item|warehouse|batch|serial)
PARTITION_KEY_SEPARATOR: str = "|"
