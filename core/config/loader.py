"""
설정 로더

stock.yaml 로드 및 엔진 설정 생성
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from core.constants import PROJECT_ROOT, Defaults, Paths, Precision
from core.ledger.types import PartitionKey


@dataclass(frozen=True)
class NegativeStockOverride:
    """음수 재고 정책 예외 (item/warehouse 단위)

    item 또는 warehouse가 None이면 해당 조건은 모든 값과 일치
    """

    item: str | None
    warehouse: str | None
    allow: bool

    def matches(self, key: PartitionKey) -> bool:
        if self.item is not None and self.item != key.item:
            return False
        if self.warehouse is not None and self.warehouse != key.warehouse:
            return False
        return True


@dataclass(frozen=True)
class NegativeStockPolicy:
    """음수 재고 정책

    기본값은 금지. 먼저 일치하는 override가 우선.
    """

    allow: bool = Defaults.ALLOW_NEGATIVE_STOCK
    overrides: tuple[NegativeStockOverride, ...] = ()

    def allows(self, key: PartitionKey) -> bool:
        """해당 파티션에서 음수 재고 허용 여부"""
        for override in self.overrides:
            if override.matches(key):
                return override.allow
        return self.allow


@dataclass(frozen=True)
class ValuationSettings:
    """평가 자릿수 설정"""

    rate_precision: int = Precision.RATE_PLACES
    value_precision: int = Precision.VALUE_PLACES


@dataclass(frozen=True)
class PostingSettings:
    """전기(posting) 동시성 설정"""

    lock_timeout_sec: float = Defaults.LOCK_TIMEOUT_SEC
    conflict_max_retries: int = Defaults.CONFLICT_MAX_RETRIES
    conflict_backoff_sec: float = Defaults.CONFLICT_BACKOFF_SEC


@dataclass(frozen=True)
class EngineSettings:
    """엔진 설정 (stock.yaml에서 로드)

    불변 데이터 구조로 설정 변경 방지
    """

    db_path: Path = Paths.LEDGER_DB
    valuation: ValuationSettings = field(default_factory=ValuationSettings)
    posting: PostingSettings = field(default_factory=PostingSettings)
    negative_stock: NegativeStockPolicy = field(default_factory=NegativeStockPolicy)
    log_level: str = Defaults.LOG_LEVEL


class SettingsLoadError(Exception):
    """설정 로드 실패 예외"""

    pass


def load_settings(path: Path | None = None) -> EngineSettings:
    """stock.yaml 파일 로드

    Args:
        path: stock.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        EngineSettings 인스턴스

    Raises:
        SettingsLoadError: 파일이 없거나 형식이 잘못된 경우
        ValueError: 유효하지 않은 로그 레벨인 경우
    """
    if path is None:
        path = Paths.SETTINGS_FILE

    if not path.exists():
        raise SettingsLoadError(f"stock.yaml 파일을 찾을 수 없습니다: {path}")

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SettingsLoadError(f"stock.yaml 파싱 실패: {e}") from e

    if data is None:
        raise SettingsLoadError("stock.yaml이 비어 있습니다")
    if not isinstance(data, dict):
        raise SettingsLoadError("stock.yaml 최상위는 매핑이어야 합니다")

    return EngineSettings(
        db_path=_parse_db_path(_section(data, "database")),
        valuation=_parse_valuation(_section(data, "valuation")),
        posting=_parse_posting(_section(data, "posting")),
        negative_stock=_parse_negative_stock(_section(data, "negative_stock")),
        log_level=_parse_log_level(_section(data, "logging")),
    )


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise SettingsLoadError(f"stock.yaml의 '{name}' 섹션은 매핑이어야 합니다")
    return section


def _parse_db_path(section: dict[str, Any]) -> Path:
    raw = section.get("path")
    if raw is None:
        return Paths.LEDGER_DB

    db_path = Path(str(raw))
    if not db_path.is_absolute():
        db_path = PROJECT_ROOT / db_path
    return db_path


def _parse_valuation(section: dict[str, Any]) -> ValuationSettings:
    return ValuationSettings(
        rate_precision=_non_negative_int(
            section, "rate_precision", Precision.RATE_PLACES, "valuation"
        ),
        value_precision=_non_negative_int(
            section, "value_precision", Precision.VALUE_PLACES, "valuation"
        ),
    )


def _parse_posting(section: dict[str, Any]) -> PostingSettings:
    timeout = section.get("lock_timeout_sec", Defaults.LOCK_TIMEOUT_SEC)
    backoff = section.get("conflict_backoff_sec", Defaults.CONFLICT_BACKOFF_SEC)

    try:
        timeout = float(timeout)
        backoff = float(backoff)
    except (TypeError, ValueError) as e:
        raise SettingsLoadError(f"stock.yaml의 posting 섹션 값이 숫자가 아닙니다: {e}") from e

    if timeout <= 0:
        raise SettingsLoadError("posting.lock_timeout_sec는 0보다 커야 합니다")
    if backoff < 0:
        raise SettingsLoadError("posting.conflict_backoff_sec는 음수일 수 없습니다")

    return PostingSettings(
        lock_timeout_sec=timeout,
        conflict_max_retries=_non_negative_int(
            section, "conflict_max_retries", Defaults.CONFLICT_MAX_RETRIES, "posting"
        ),
        conflict_backoff_sec=backoff,
    )


def _parse_negative_stock(section: dict[str, Any]) -> NegativeStockPolicy:
    allow = section.get("allow", Defaults.ALLOW_NEGATIVE_STOCK)
    if not isinstance(allow, bool):
        raise SettingsLoadError("negative_stock.allow는 true/false여야 합니다")

    raw_overrides = section.get("overrides") or []
    if not isinstance(raw_overrides, list):
        raise SettingsLoadError("negative_stock.overrides는 목록이어야 합니다")

    overrides = []
    for i, raw in enumerate(raw_overrides):
        if not isinstance(raw, dict):
            raise SettingsLoadError(f"negative_stock.overrides[{i}]는 매핑이어야 합니다")
        if "allow" not in raw or not isinstance(raw["allow"], bool):
            raise SettingsLoadError(f"negative_stock.overrides[{i}]에 'allow'(true/false)가 없습니다")

        item = raw.get("item")
        warehouse = raw.get("warehouse")
        if item is None and warehouse is None:
            raise SettingsLoadError(
                f"negative_stock.overrides[{i}]에는 item 또는 warehouse가 필요합니다"
            )

        overrides.append(
            NegativeStockOverride(
                item=str(item) if item is not None else None,
                warehouse=str(warehouse) if warehouse is not None else None,
                allow=raw["allow"],
            )
        )

    return NegativeStockPolicy(allow=allow, overrides=tuple(overrides))


def _parse_log_level(section: dict[str, Any]) -> str:
    level = str(section.get("level", Defaults.LOG_LEVEL)).upper()
    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if level not in valid_levels:
        raise ValueError(
            f"유효하지 않은 로그 레벨입니다: '{level}'. "
            f"유효한 값: {valid_levels}"
        )
    return level


def _non_negative_int(section: dict[str, Any], name: str, default: int, section_name: str) -> int:
    value = section.get(name, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise SettingsLoadError(
            f"stock.yaml의 {section_name}.{name}는 0 이상의 정수여야 합니다: {value!r}"
        )
    return value


class Settings:
    """애플리케이션 설정 (싱글턴 패턴)

    stock.yaml을 로드하고 관련 설정을 제공
    """

    _instance: "Settings | None" = None
    _settings: EngineSettings | None = None

    def __new__(cls, settings_path: Path | None = None) -> "Settings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, settings_path: Path | None = None) -> None:
        if self._settings is None:
            type(self)._settings = load_settings(settings_path)

    @property
    def engine(self) -> EngineSettings:
        """전체 엔진 설정"""
        assert self._settings is not None
        return self._settings

    @property
    def db_path(self) -> Path:
        """DB 경로"""
        assert self._settings is not None
        return self._settings.db_path

    @property
    def negative_stock(self) -> NegativeStockPolicy:
        """음수 재고 정책"""
        assert self._settings is not None
        return self._settings.negative_stock

    @property
    def posting(self) -> PostingSettings:
        """전기 동시성 설정"""
        assert self._settings is not None
        return self._settings.posting

    @property
    def valuation(self) -> ValuationSettings:
        """평가 자릿수 설정"""
        assert self._settings is not None
        return self._settings.valuation

    @classmethod
    def reset(cls) -> None:
        """싱글턴 인스턴스 초기화 (테스트용)"""
        cls._instance = None
        cls._settings = None


def get_settings(settings_path: Path | None = None) -> Settings:
    """Settings 인스턴스 반환

    Args:
        settings_path: stock.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Settings 싱글턴 인스턴스
    """
    return Settings(settings_path)
