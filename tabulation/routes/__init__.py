from fastapi import APIRouter

from . import admin, auth, judge, tabulator

router = APIRouter()
router.include_router(auth.router)
router.include_router(judge.router)
router.include_router(tabulator.router)
router.include_router(admin.router)
