import enum


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    JG_MANAGEMENT = "jg_management"
    SUBCONTRACTOR = "subcontractor"


class PhaseLabel(str, enum.Enum):
    JOB_REQUEST = "Job Request"
    PENDING_WORK_ORDER = "Pending Work Order"
    WORK_ORDER = "Work Order"
    INVOICING = "Invoicing"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    ARCHIVED = "Archived"


class ApprovalType(str, enum.Enum):
    EXTRA_CHARGES = "extra_charges"
    EXTRA_CHARGES_PREVIEW = "extra_charges_preview"


class ApprovalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"
    EXPIRED = "expired"


class PhaseDecision(str, enum.Enum):
    APPROVED = "approved"
    DECLINED = "declined"
    RESET = "reset"


class JobBillingCategory(str, enum.Enum):
    OWNER = "owner"
    WARRANTY = "warranty"
    TENANT = "tenant"


class AccentWallType(str, enum.Enum):
    PAINT_OVER = "Paint Over"
    CUSTOM = "Custom"


class NotificationType(str, enum.Enum):
    EXTRA_CHARGES = "extra_charges"
    SPRINKLER_PAINT = "sprinkler_paint"
    DRYWALL_REPAIRS = "drywall_repairs"
    WORK_ORDER = "work_order"
    INVOICE = "invoice"
    COMPLETION = "completion"


class EmailStatus(str, enum.Enum):
    SENT = "sent"
    FAILED = "failed"


class NotificationCategory(str, enum.Enum):
    APPROVAL = "approval"
    PHASE_CHANGE = "phase_change"
    ASSIGNMENT = "assignment"
