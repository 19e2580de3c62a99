from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from ..model import DailyPay, DailyWork, SalaryRule


class PayCalculator(ABC):
    """Calculator interface (Strategy Pattern for daily pay)."""

    @abstractmethod
    def daily_pay(self, work: DailyWork, rules: Sequence[SalaryRule]) -> DailyPay:
        raise NotImplementedError
