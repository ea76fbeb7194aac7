"""
요청 스키마 (Pydantic)

외부 경계에서 들어오는 재고 이동 요청 검증
"""

from datetime import date, time
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from core.constants import Defaults
from core.ledger.types import VoucherRef
from engine.posting.coordinator import PostingLine


class MovementLineRequest(BaseModel):
    """전표 라인 요청"""

    item: str = Field(..., min_length=1, description="품목 코드")
    warehouse: str = Field(..., min_length=1, description="창고")
    actual_qty: Decimal = Field(..., description="부호 있는 수량 (+ 입고, - 출고)")
    incoming_rate: Decimal | None = Field(default=None, ge=0, description="입고 단가")
    batch_no: str | None = Field(default=None, description="배치 번호")
    serial_no: str | None = Field(default=None, description="시리얼 번호")

    @field_validator("item", "warehouse")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("actual_qty")
    @classmethod
    def _non_zero_qty(cls, value: Decimal) -> Decimal:
        if not value.is_finite():
            raise ValueError("actual_qty must be finite")
        if value == 0:
            raise ValueError("actual_qty must not be zero")
        return value

    def to_line(self, posting_date: date, posting_time: time | None) -> PostingLine:
        return PostingLine(
            item=self.item,
            warehouse=self.warehouse,
            posting_date=posting_date,
            posting_time=posting_time,
            actual_qty=self.actual_qty,
            incoming_rate=self.incoming_rate,
            batch_no=self.batch_no,
            serial_no=self.serial_no,
        )


class StockMovementRequest(MovementLineRequest):
    """단일 재고 이동 요청

    전표 유형/번호와 전기 시각을 포함한 한 줄짜리 이동.
    """

    voucher_type: str = Field(..., min_length=1, description="전표 유형 (Purchase Receipt 등)")
    voucher_no: str = Field(..., min_length=1, description="전표 번호")
    posting_date: date = Field(..., description="전기 일자")
    posting_time: time | None = Field(default=None, description="전기 시각 (None이면 00:00)")
    company: str = Field(default=Defaults.COMPANY, description="회사")
    owner: str = Field(default=Defaults.OWNER, description="작성자")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "item": "ITEM-001",
                    "warehouse": "Stores",
                    "voucher_type": "Purchase Receipt",
                    "voucher_no": "PR-0001",
                    "posting_date": "2024-01-10",
                    "posting_time": "09:00:00",
                    "actual_qty": "10",
                    "incoming_rate": "100",
                },
            ]
        }
    }

    @field_validator("voucher_type", "voucher_no")
    @classmethod
    def _voucher_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    def voucher_ref(self) -> VoucherRef:
        return VoucherRef.create(self.voucher_type, self.voucher_no)


class VoucherPostingRequest(BaseModel):
    """다중 라인 전표 요청"""

    voucher_type: str = Field(..., min_length=1, description="전표 유형")
    voucher_no: str = Field(..., min_length=1, description="전표 번호")
    posting_date: date = Field(..., description="전기 일자")
    posting_time: time | None = Field(default=None, description="전기 시각")
    lines: list[MovementLineRequest] = Field(..., min_length=1, description="전표 라인")
    company: str = Field(default=Defaults.COMPANY, description="회사")
    owner: str = Field(default=Defaults.OWNER, description="작성자")

    @field_validator("voucher_type", "voucher_no")
    @classmethod
    def _voucher_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    def voucher_ref(self) -> VoucherRef:
        return VoucherRef.create(self.voucher_type, self.voucher_no)

    def to_lines(self) -> list[PostingLine]:
        return [line.to_line(self.posting_date, self.posting_time) for line in self.lines]
