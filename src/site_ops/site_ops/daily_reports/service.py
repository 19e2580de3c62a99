from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence

from ..assignments.repository import AssignmentRepository
from ..common.validators import parse_enum, require_non_empty, require_non_negative
from ..core.enums import DailyReportStatus, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..sites.repository import SiteRepository
from ..users.repository import UserRepository
from .model import DailyReport, ReportDraft, ReportWorker, SiteReportSummary
from .repository import DailyReportRepository

logger = logging.getLogger(__name__)

_REVIEWERS = (Role.ADMIN, Role.SITE_MANAGER)


class DailyReportService:
    """Daily work reports (작업일지): draft -> submitted -> approved|rejected; rejected reports can be edited again."""

    def __init__(
        self,
        reports: DailyReportRepository,
        sites: SiteRepository,
        users: UserRepository,
        assignments: AssignmentRepository,
    ):
        self._reports = reports
        self._sites = sites
        self._users = users
        self._assignments = assignments

    def get(self, report_id: int) -> DailyReport:
        report = self._reports.get_by_id(report_id)
        if not report:
            raise NotFoundError("Daily report not found")
        return report

    def view(self, report_id: int, *, user_id: int, role: Role) -> DailyReport:
        report = self.get(report_id)
        self._require_author_or_reviewer(report, user_id, role)
        return report

    def _require_author_or_reviewer(self, report: DailyReport, user_id: int, role: Role) -> None:
        if report.created_by != user_id and role not in _REVIEWERS:
            raise AuthorizationError("You can only access your own daily reports")

    def _workers(self, workers: Sequence[ReportWorker]) -> List[ReportWorker]:
        seen = set()
        clean: List[ReportWorker] = []
        for w in workers:
            if w.user_id in seen:
                raise ValidationError(f"Worker {w.user_id} is listed twice")
            seen.add(w.user_id)
            labor = round(require_non_negative(w.labor_hours, "Labor hours"), 2)
            user = self._users.get_by_id(w.user_id)
            if not user or not user.is_active:
                raise ValidationError(f"Worker {w.user_id} is not available")
            # zero-hour lines carry no labor
            if labor > 0:
                clean.append(ReportWorker(user_id=w.user_id, labor_hours=labor, full_name=user.full_name))
        return clean

    def save_report(
        self,
        *,
        author_id: int,
        author_role: Role,
        site_id: int,
        work_date: date,
        process_type: str,
        workers: Sequence[ReportWorker],
        member_name: Optional[str] = None,
        issues: Optional[str] = None,
        today: Optional[date] = None,
    ) -> tuple[int, bool]:
        """Create the author's report for the site and day, or overwrite it while it is still editable.

        Returns (report_id, created).
        """
        today = today or date.today()
        site = self._sites.get_by_id(site_id)
        if not site or site.is_deleted:
            raise NotFoundError("Site not found")
        if work_date > today:
            raise ValidationError("Work date cannot be in the future")
        if author_role != Role.ADMIN and not self._assignments.get_active(site_id=site_id, user_id=author_id):
            raise AuthorizationError("You are not assigned to this site")

        draft = ReportDraft(
            site_id=site_id,
            work_date=work_date,
            process_type=require_non_empty(process_type, "Process type"),
            member_name=(member_name or "").strip() or None,
            issues=(issues or "").strip() or None,
            workers=self._workers(workers),
        )

        existing = self._reports.find(site_id=site_id, work_date=work_date, created_by=author_id)
        if existing:
            if not existing.is_editable or not self._reports.replace(existing.report_id, draft):
                raise ValidationError("This daily report was already submitted")
            logger.info("Daily report %s updated (%d workers)", existing.report_id, len(draft.workers))
            return existing.report_id, False

        report_id = self._reports.create(draft, created_by=author_id)
        logger.info(
            "Daily report %s created site=%s date=%s workers=%d", report_id, site_id, work_date, len(draft.workers)
        )
        return report_id, True

    def submit(self, report_id: int, *, actor_id: int, actor_role: Role) -> DailyReport:
        report = self.get(report_id)
        self._require_author_or_reviewer(report, actor_id, actor_role)
        if not report.workers:
            raise ValidationError("Add at least one worker before submitting")
        if not self._reports.set_status(
            report_id, from_status=DailyReportStatus.DRAFT, to_status=DailyReportStatus.SUBMITTED
        ):
            raise ValidationError("Only draft reports can be submitted")
        logger.info("Daily report %s submitted by %s", report_id, actor_id)
        return self.get(report_id)

    def decide(
        self,
        report_id: int,
        *,
        approver_id: int,
        approver_role: Role,
        approve: bool,
        comment: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> DailyReport:
        if approver_role not in _REVIEWERS:
            raise AuthorizationError("Only managers can review daily reports")
        self.get(report_id)
        to_status = DailyReportStatus.APPROVED if approve else DailyReportStatus.REJECTED
        if not self._reports.set_status(
            report_id,
            from_status=DailyReportStatus.SUBMITTED,
            to_status=to_status,
            actor_id=approver_id,
            comment=(comment or "").strip() or None,
            at=now or datetime.now(),
        ):
            raise ValidationError("Only submitted reports can be reviewed")
        logger.info("Daily report %s %s by %s", report_id, to_status.value, approver_id)
        return self.get(report_id)

    def delete(self, report_id: int, *, actor_id: int, actor_role: Role) -> None:
        report = self.get(report_id)
        self._require_author_or_reviewer(report, actor_id, actor_role)
        if not self._reports.delete_draft(report_id):
            raise ValidationError("Only draft reports can be deleted")
        logger.info("Daily report %s deleted by %s", report_id, actor_id)

    def list_reports(
        self,
        *,
        site_id: Optional[int] = None,
        status=None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        created_by: Optional[int] = None,
    ) -> Sequence[DailyReport]:
        if date_from and date_to and date_to < date_from:
            raise ValidationError("End date cannot be before start date")
        return self._reports.list_reports(
            site_id=site_id,
            status=parse_enum(DailyReportStatus, status, "Status") if status else None,
            date_from=date_from,
            date_to=date_to,
            created_by=created_by,
        )

    def site_summaries(self, *, date_from: date, date_to: date) -> List[SiteReportSummary]:
        """Per-site report counts and approved labor for the period."""
        reports = self.list_reports(date_from=date_from, date_to=date_to)
        by_site: Dict[int, List[DailyReport]] = defaultdict(list)
        for r in reports:
            by_site[r.site_id].append(r)

        out: List[SiteReportSummary] = []
        for site_id, items in by_site.items():
            approved = [r for r in items if r.status == DailyReportStatus.APPROVED]
            out.append(
                SiteReportSummary(
                    site_id=site_id,
                    site_name=items[0].site_name or "",
                    reports=len(items),
                    submitted=sum(1 for r in items if r.status == DailyReportStatus.SUBMITTED),
                    approved=len(approved),
                    workers=len({w.user_id for r in approved for w in r.workers}),
                    labor_hours=round(sum(r.total_labor_hours for r in approved), 2),
                )
            )
        out.sort(key=lambda s: s.site_name)
        return out
