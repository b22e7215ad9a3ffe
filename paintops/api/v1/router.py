from fastapi import APIRouter

from paintops.api.v1.approvals import router as approvals_router
from paintops.api.v1.auth import router as auth_router
from paintops.api.v1.billing import router as billing_router
from paintops.api.v1.emails import router as emails_router
from paintops.api.v1.exports import router as exports_router
from paintops.api.v1.jobs import router as jobs_router
from paintops.api.v1.notifications import router as notifications_router
from paintops.api.v1.phases import router as phases_router

v1_router = APIRouter()

v1_router.include_router(auth_router)
v1_router.include_router(billing_router)
v1_router.include_router(jobs_router)
v1_router.include_router(phases_router)
v1_router.include_router(approvals_router)
v1_router.include_router(emails_router)
v1_router.include_router(exports_router)
v1_router.include_router(notifications_router)
