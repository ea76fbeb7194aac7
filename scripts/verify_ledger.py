"""
재고 원장 drift 점검

모든 파티션의 파생 필드(qty_after_transaction / valuation_rate / stock_value)를
처음부터 다시 계산한 값과 비교. --fix를 주면 drift가 있는 파티션을 재계산.

사용법:
    python -m scripts.verify_ledger
    python -m scripts.verify_ledger --config config/stock.yaml --fix
"""

import argparse
import asyncio
import logging
from pathlib import Path

# 프로젝트 루트를 Python 경로에 추가
import sys
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from core.config.loader import SettingsLoadError, load_settings
from core.logging import setup_logging
from engine.bootstrap import open_engine

logger = logging.getLogger("verify")


async def main(
    config_path: Path | None,
    fix: bool,
    db_path: Path | None = None,
    log_dir: Path | None = None,
    configure_logging: bool = False,
) -> int:
    """점검 실행

    Args:
        config_path: stock.yaml 경로 (None이면 기본 경로)
        fix: drift 파티션 재계산 여부
        db_path: DB 경로 (None이면 설정값)
        log_dir: 로그 디렉토리 (None이면 기본 경로)
        configure_logging: True면 설정의 logging.level로 로깅 초기화

    Returns:
        종료 코드 (0: drift 없음 또는 모두 수정, 1: drift 발견, 2: 설정 오류)
    """
    try:
        settings = load_settings(config_path)
    except (SettingsLoadError, ValueError) as e:
        if configure_logging:
            setup_logging("verify", log_dir=log_dir)
        logger.error(f"설정 로드 실패: {e}")
        return 2

    if configure_logging:
        level = getattr(logging, settings.log_level)
        setup_logging("verify", console_level=level, file_level=level, log_dir=log_dir)

    async with open_engine(settings, db_path=db_path) as engine:
        drifts = await engine.verify(fix=fix)

    if not drifts:
        logger.info("drift 없음 ✓")
        return 0

    for drift in drifts:
        logger.warning(drift.description, extra={"partition": drift.partition_key})

    partitions = len({drift.partition_key for drift in drifts})
    if fix:
        logger.info(f"{partitions}개 파티션 재계산 완료 ({len(drifts)}개 항목)")
        return 0

    logger.error(f"{partitions}개 파티션에서 {len(drifts)}개 항목 drift 발견 (--fix로 재계산)")
    return 1


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="재고 원장 drift 점검"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="stock.yaml 경로 (기본: config/stock.yaml)"
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="DB 경로 (기본: 설정의 database.path)"
    )
    parser.add_argument(
        "--fix",
        action="store_true",
        help="drift가 있는 파티션을 처음부터 재계산"
    )
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()
    sys.exit(asyncio.run(main(args.config, args.fix, args.db, configure_logging=True)))
