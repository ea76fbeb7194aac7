"""
Reports 모듈

재고 잔액 및 기초/기말 재고 금액 조회
"""

from engine.reports.stock_balance import StockBalanceReport

__all__ = [
    "StockBalanceReport",
]
