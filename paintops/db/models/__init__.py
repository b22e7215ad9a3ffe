from paintops.db.models.approval import ApprovalToken
from paintops.db.models.email import EmailAttachment, EmailConfiguration, EmailLog, EmailTemplate
from paintops.db.models.job import Job, JobImage, JobPhase, JobPhaseChange
from paintops.db.models.notification import Notification
from paintops.db.models.profile import Profile
from paintops.db.models.property import BillingCategory, BillingDetail, Property, UnitSize
from paintops.db.models.work_order import WorkOrder

__all__ = [
    "ApprovalToken",
    "BillingCategory",
    "BillingDetail",
    "EmailAttachment",
    "EmailConfiguration",
    "EmailLog",
    "EmailTemplate",
    "Job",
    "JobImage",
    "JobPhase",
    "JobPhaseChange",
    "Notification",
    "Profile",
    "Property",
    "UnitSize",
    "WorkOrder",
]
