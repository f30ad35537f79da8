"""Route aggregation for the EduFam web application."""

from fastapi import APIRouter

from . import analytics, grade, me, override, submission

router = APIRouter()
router.include_router(me.router)
router.include_router(grade.router)
router.include_router(override.router)
router.include_router(submission.router)
router.include_router(analytics.router)
