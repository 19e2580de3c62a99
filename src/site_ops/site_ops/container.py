from __future__ import annotations

from dataclasses import dataclass
from types import ModuleType
from typing import Optional

from .assignments.mysql_assignment_repository import MySQLAssignmentRepository
from .assignments.service import AssignmentService
from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .certificates.service import CertificateService
from .core.constants import DEFAULT_LATE_GRACE_MINUTES
from .daily_reports.mysql_daily_report_repository import MySQLDailyReportRepository
from .daily_reports.service import DailyReportService
from .database.connection import DBConfig, DatabaseConnection
from .documents.mysql_document_repository import MySQLDocumentRepository
from .documents.mysql_punch_repository import MySQLPunchRepository
from .documents.punch_service import PunchItemService
from .documents.service import DocumentService
from .documents.storage import LocalStorage
from .materials.mysql_inventory_repository import MySQLInventoryRepository
from .materials.mysql_material_repository import MySQLMaterialRepository
from .materials.mysql_material_request_repository import MySQLMaterialRequestRepository
from .materials.request_service import MaterialRequestService
from .materials.service import MaterialService
from .partners.mysql_partner_repository import MySQLPartnerRepository
from .partners.mysql_site_partner_repository import MySQLSitePartnerRepository
from .partners.service import PartnerService
from .payroll.mysql_salary_record_repository import MySQLSalaryRecordRepository
from .payroll.mysql_salary_rule_repository import MySQLSalaryRuleRepository
from .payroll.mysql_worker_setting_repository import MySQLWorkerSettingRepository
from .payroll.service import SalaryService
from .sites.mysql_site_repository import MySQLSiteRepository
from .sites.service import SiteService
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    auth_service: AuthService
    user_service: UserService
    site_service: SiteService
    partner_service: PartnerService
    assignment_service: AssignmentService
    attendance_service: AttendanceService
    daily_report_service: DailyReportService
    salary_service: SalaryService
    material_service: MaterialService
    material_request_service: MaterialRequestService
    document_service: DocumentService
    punch_service: PunchItemService
    certificate_service: CertificateService


def build_container(*, db_config: dict, settings: Optional[ModuleType] = None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))
    upload_folder = getattr(settings, "UPLOAD_FOLDER", "uploads")
    font_path = getattr(settings, "PDF_FONT_PATH", None)

    users_repo = MySQLUserRepository(conn)
    sites_repo = MySQLSiteRepository(conn)
    partners_repo = MySQLPartnerRepository(conn)
    site_partners_repo = MySQLSitePartnerRepository(conn)
    assignments_repo = MySQLAssignmentRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    daily_reports_repo = MySQLDailyReportRepository(conn)
    salary_rules_repo = MySQLSalaryRuleRepository(conn)
    worker_settings_repo = MySQLWorkerSettingRepository(conn)
    salary_records_repo = MySQLSalaryRecordRepository(conn)
    materials_repo = MySQLMaterialRepository(conn)
    inventory_repo = MySQLInventoryRepository(conn)
    material_requests_repo = MySQLMaterialRequestRepository(conn)
    documents_repo = MySQLDocumentRepository(conn)
    punch_repo = MySQLPunchRepository(conn)
    storage = LocalStorage(upload_folder)

    assignment_service = AssignmentService(assignments_repo, users_repo, sites_repo)
    material_service = MaterialService(materials_repo, inventory_repo, sites_repo)
    document_service = DocumentService(documents_repo, users_repo, storage)

    return Container(
        conn=conn,
        auth_service=AuthService(users_repo),
        user_service=UserService(users_repo),
        site_service=SiteService(sites_repo, active_assignments=assignments_repo.count_active_for_sites),
        partner_service=PartnerService(partners_repo, site_partners_repo, sites_repo),
        assignment_service=assignment_service,
        attendance_service=AttendanceService(
            attendance_repo,
            sites_repo,
            assignments_repo,
            strategy_factory=AttendanceStrategyFactory(),
            grace_minutes=int(getattr(settings, "LATE_GRACE_MINUTES", DEFAULT_LATE_GRACE_MINUTES)),
        ),
        daily_report_service=DailyReportService(daily_reports_repo, sites_repo, users_repo, assignments_repo),
        salary_service=SalaryService(
            salary_rules_repo,
            worker_settings_repo,
            salary_records_repo,
            attendance_repo,
            users_repo,
            daily_reports=daily_reports_repo,
        ),
        material_service=material_service,
        material_request_service=MaterialRequestService(
            material_requests_repo, materials_repo, sites_repo, material_service
        ),
        document_service=document_service,
        punch_service=PunchItemService(punch_repo, sites_repo, storage, document_service, font_path=font_path),
        certificate_service=CertificateService(document_service, font_path=font_path),
    )
