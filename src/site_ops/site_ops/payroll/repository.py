from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import SalaryRecordStatus
from .model import DailyPay, SalaryRecord, SalaryRule, SalaryRuleDraft, WorkerSalarySetting


class SalaryRuleRepository(Protocol):
    def get_by_id(self, rule_id: int) -> Optional[SalaryRule]:
        raise NotImplementedError

    def list_rules(self, *, active_only: bool = False) -> Sequence[SalaryRule]:
        raise NotImplementedError

    def create(self, draft: SalaryRuleDraft) -> int:
        raise NotImplementedError

    def update(self, rule_id: int, draft: SalaryRuleDraft) -> bool:
        raise NotImplementedError

    def delete(self, rule_id: int) -> bool:
        raise NotImplementedError


class WorkerSettingRepository(Protocol):
    def get_for_user(self, user_id: int) -> Optional[WorkerSalarySetting]:
        raise NotImplementedError

    def upsert(self, setting: WorkerSalarySetting) -> None:
        raise NotImplementedError

    def list_all(self) -> Sequence[WorkerSalarySetting]:
        raise NotImplementedError


class SalaryRecordRepository(Protocol):
    def list_records(
        self,
        *,
        date_from: date,
        date_to: date,
        user_id: Optional[int] = None,
        site_id: Optional[int] = None,
        status: Optional[SalaryRecordStatus] = None,
    ) -> Sequence[SalaryRecord]:
        raise NotImplementedError

    def delete_calculated(self, *, date_from: date, date_to: date, user_ids: Sequence[int]) -> int:
        raise NotImplementedError

    def insert_many(self, pays: Sequence[DailyPay]) -> int:
        raise NotImplementedError

    def set_status(
        self,
        salary_ids: Sequence[int],
        *,
        from_status: SalaryRecordStatus,
        to_status: SalaryRecordStatus,
        actor_id: Optional[int],
        at: datetime,
    ) -> int:
        raise NotImplementedError
