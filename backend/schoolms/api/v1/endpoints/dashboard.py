from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from schoolms.core.database import get_db
from schoolms.modules.auth.dependencies import (
    get_current_admin,
    get_current_employee,
    get_current_principal,
    get_current_student,
    get_current_teacher,
)
from schoolms.schemas.auth import Principal
from schoolms.schemas.dashboard import DashboardView, TeacherDashboard
from schoolms.services.dashboard_service import DashboardService

router = APIRouter()


@router.get("", response_model=DashboardView)
async def get_dashboard(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """Dashboard for the caller's role"""
    return await DashboardService(db).get_dashboard_for(principal)


@router.get("/admin", response_model=DashboardView)
async def admin_dashboard(
    principal: Principal = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    return await DashboardService(db).get_dashboard_for(principal)


@router.get("/employee", response_model=DashboardView)
async def employee_dashboard(
    principal: Principal = Depends(get_current_employee),
    db: AsyncSession = Depends(get_db)
):
    return await DashboardService(db).get_dashboard_for(principal)


@router.get("/student", response_model=DashboardView)
async def student_dashboard(
    principal: Principal = Depends(get_current_student),
    db: AsyncSession = Depends(get_db)
):
    return await DashboardService(db).get_dashboard_for(principal)


@router.get("/teacher", response_model=TeacherDashboard)
async def teacher_dashboard(
    principal: Principal = Depends(get_current_teacher),
    db: AsyncSession = Depends(get_db)
):
    """Classes, subjects and student totals of the signed-in teacher"""
    return await DashboardService(db).get_teacher_dashboard(principal)
