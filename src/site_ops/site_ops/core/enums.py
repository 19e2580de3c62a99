from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for access control."""

    ADMIN = "admin"
    SITE_MANAGER = "site_manager"
    PARTNER = "partner"
    WORKER = "worker"


class SiteStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    COMPLETED = "completed"


class AssignmentType(str, Enum):
    PERMANENT = "permanent"
    TEMPORARY = "temporary"
    SUBSTITUTE = "substitute"


class AssignmentRole(str, Enum):
    WORKER = "worker"
    SUPERVISOR = "supervisor"
    SITE_MANAGER = "site_manager"


class AttendanceStatus(str, Enum):
    """Normalized attendance status stored in the database."""

    ON_TIME = "ON_TIME"
    LATE = "LATE"
    EARLY_LEAVE = "EARLY_LEAVE"
    ABSENT = "ABSENT"
    UNKNOWN = "UNKNOWN"


class EmploymentType(str, Enum):
    REGULAR_EMPLOYEE = "regular_employee"
    FREELANCER = "freelancer"
    DAILY_WORKER = "daily_worker"


class SalaryRuleType(str, Enum):
    HOURLY_RATE = "hourly_rate"
    DAILY_RATE = "daily_rate"
    OVERTIME_MULTIPLIER = "overtime_multiplier"


class SalaryRecordStatus(str, Enum):
    CALCULATED = "calculated"
    APPROVED = "approved"
    PAID = "paid"


class PartnerStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    TERMINATED = "terminated"


class CompanyType(str, Enum):
    GENERAL_CONTRACTOR = "general_contractor"
    SUBCONTRACTOR = "subcontractor"
    SUPPLIER = "supplier"
    CONSULTANT = "consultant"


class StockStatus(str, Enum):
    NORMAL = "normal"
    LOW = "low"
    OUT_OF_STOCK = "out_of_stock"


class MaterialTransactionType(str, Enum):
    IN = "in"
    OUT = "out"
    RETURN = "return"
    WASTE = "waste"
    ADJUSTMENT = "adjustment"


class MaterialRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    ORDERED = "ordered"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class DailyReportStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class RequestPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class DocumentCategory(str, Enum):
    SHARED = "shared"
    MARKUP = "markup"
    REQUIRED = "required"
    INVOICE = "invoice"
    PHOTO_GRID = "photo_grid"
    PERSONAL = "personal"
    CERTIFICATE = "certificate"
    BLUEPRINT = "blueprint"
    SAFETY = "safety"
    REPORT = "report"
    OTHER = "other"


class ApprovalStatus(str, Enum):
    NOT_REQUIRED = "not_required"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PermissionType(str, Enum):
    VIEW = "view"
    EDIT = "edit"
    ADMIN = "admin"


class AccessType(str, Enum):
    VIEW = "view"
    DOWNLOAD = "download"
    PRINT = "print"
    EDIT = "edit"


class PunchStatus(str, Enum):
    OPEN = "open"
    DONE = "done"
