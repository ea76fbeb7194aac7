"""
이동평균 평가 계산기

직전 평가 상태 + 재고 이동 → 새 평가 상태를 계산하는 순수 함수.
I/O와 공유 상태가 없으므로 락 없이 어디서든 호출 가능.

- 입고: 가중평균 (직전 수량 * 직전 단가 + 입고 수량 * 입고 단가) / 새 수량
- 출고: 직전 단가 유지 (출고는 평균 단가로 소진되며 단가를 바꾸지 않음)
- 새 수량이 0이면 단가 0으로 초기화 (다음 입고에서 0 나누기 방지)
"""

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from core.constants import Precision
from core.ledger.errors import InvalidMovement
from core.ledger.types import Movement, ValuationState
from core.types import MovementDirection, VoucherType, get_voucher_rule


class ValuationCalculator:
    """이동평균 평가 계산기

    Args:
        rate_places: valuation_rate 소수 자릿수
        value_places: stock_value 소수 자릿수

    사용 예시:
    ```python
    calculator = ValuationCalculator()
    state = calculator.apply(
        ValuationState.empty(),
        Movement(actual_qty=Decimal("10"), incoming_rate=Decimal("5")),
    )
    # state.qty == 10, state.rate == 5, state.value == 50
    ```
    """

    def __init__(
        self,
        rate_places: int = Precision.RATE_PLACES,
        value_places: int = Precision.VALUE_PLACES,
    ):
        if rate_places < 0 or value_places < 0:
            raise ValueError("precision places must be non-negative")
        self.rate_places = rate_places
        self.value_places = value_places
        self._rate_quantum = Decimal(1).scaleb(-rate_places)
        self._value_quantum = Decimal(1).scaleb(-value_places)

    def apply(self, prior: ValuationState, movement: Movement) -> ValuationState:
        """이동 적용

        Args:
            prior: 직전 평가 상태
            movement: 적용할 이동

        Returns:
            새 평가 상태

        Raises:
            InvalidMovement: 수량 0, 방향과 부호 불일치, 음수/비유한 단가
        """
        self.check_movement(movement)

        new_qty = prior.qty + movement.actual_qty

        if movement.actual_qty > 0:
            new_rate = self._inbound_rate(prior, movement, new_qty)
        else:
            new_rate = self._outbound_rate(prior, movement, new_qty)

        if new_qty == 0:
            new_rate = Precision.ZERO

        new_rate = self.round_rate(new_rate)
        return ValuationState(
            qty=new_qty,
            rate=new_rate,
            value=self.round_value(new_qty * new_rate),
        )

    def check_movement(self, movement: Movement) -> None:
        """이동 계약 검증

        Raises:
            InvalidMovement: 계약 위반
        """
        qty = movement.actual_qty
        if not isinstance(qty, Decimal) or not qty.is_finite():
            raise InvalidMovement("actual_qty must be a finite Decimal", actual_qty=qty)
        if qty == 0:
            raise InvalidMovement("actual_qty must not be zero", actual_qty=qty)

        if movement.direction == MovementDirection.INBOUND and qty <= 0:
            raise InvalidMovement(
                "inbound movement requires positive actual_qty",
                actual_qty=qty,
            )
        if movement.direction == MovementDirection.OUTBOUND and qty >= 0:
            raise InvalidMovement(
                "outbound movement requires negative actual_qty",
                actual_qty=qty,
            )

        rate = movement.incoming_rate
        if rate is not None:
            if not isinstance(rate, Decimal) or not rate.is_finite():
                raise InvalidMovement("incoming_rate must be a finite Decimal", incoming_rate=rate)
            if rate < 0:
                raise InvalidMovement("incoming_rate must not be negative", incoming_rate=rate)

    def validate_movement(self, voucher_type: str | VoucherType, movement: Movement) -> Movement:
        """전표 규칙 적용 후 이동 계약 검증

        Returns:
            전표 방향이 설정된 Movement

        Raises:
            InvalidMovement: 단가 누락, 방향 불일치 등 계약 위반
        """
        checked = movement_for_voucher(voucher_type, movement.actual_qty, movement.incoming_rate)
        self.check_movement(checked)
        return checked

    def round_rate(self, rate: Decimal) -> Decimal:
        return rate.quantize(self._rate_quantum, rounding=ROUND_HALF_UP)

    def round_value(self, value: Decimal) -> Decimal:
        return value.quantize(self._value_quantum, rounding=ROUND_HALF_UP)

    def _inbound_rate(
        self,
        prior: ValuationState,
        movement: Movement,
        new_qty: Decimal,
    ) -> Decimal:
        # 단가 없는 입고 (매출 반품 등)는 현재 평균 단가로 평가
        incoming = movement.incoming_rate if movement.incoming_rate is not None else prior.rate

        # 음수 재고 위로 들어오는 입고: 음수 기반 가중평균은 의미가 없음
        if prior.qty < 0:
            return incoming if new_qty > 0 else prior.rate

        if new_qty == 0:
            return Precision.ZERO

        total = prior.qty * prior.rate + movement.actual_qty * incoming
        return total / new_qty

    def _outbound_rate(
        self,
        prior: ValuationState,
        movement: Movement,
        new_qty: Decimal,
    ) -> Decimal:
        # 음수 재고 (정책이 허용한 경우에만 도달): 평균 단가가 없으면 fallback
        if new_qty < 0 and prior.rate == 0 and movement.incoming_rate is not None:
            return movement.incoming_rate
        return prior.rate


def movement_for_voucher(
    voucher_type: str | VoucherType,
    actual_qty: Decimal,
    incoming_rate: Decimal | None = None,
) -> Movement:
    """전표 규칙이 적용된 Movement 생성

    Args:
        voucher_type: 전표 유형
        actual_qty: 부호 있는 수량
        incoming_rate: 입고 단가

    Returns:
        direction이 설정된 Movement

    Raises:
        InvalidMovement: 입고 단가가 필요한 전표에 단가 누락
    """
    rule = get_voucher_rule(voucher_type)
    movement = Movement(
        actual_qty=actual_qty,
        incoming_rate=incoming_rate,
        direction=rule.direction,
    )

    if rule.requires_rate and actual_qty > 0 and incoming_rate is None:
        vtype = voucher_type.value if isinstance(voucher_type, Enum) else voucher_type
        raise InvalidMovement(
            f"incoming_rate is required for {vtype}",
            voucher_type=vtype,
            actual_qty=actual_qty,
        )

    return movement
