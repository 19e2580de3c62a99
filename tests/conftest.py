from __future__ import annotations

from datetime import date, datetime

import pytest


@pytest.fixture
def fixed_now() -> datetime:
    # a Wednesday
    return datetime(2025, 3, 12, 9, 30)


@pytest.fixture
def today(fixed_now) -> date:
    return fixed_now.date()
