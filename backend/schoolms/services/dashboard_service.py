"""
Dashboard resolution.

Routing is a total mapping from role to dashboard: anything outside the
known roles (Pending, Anonymous, a missing or unknown claim) goes to the
default page. Access control happens before these functions are called.
"""

import enum
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from schoolms.core.logging_config import logger
from schoolms.models.academic import SchoolClass, Subject
from schoolms.models.staff import Teacher, TeacherSchoolClass, TeacherSubject
from schoolms.models.user import RoleName, User
from schoolms.schemas.auth import Principal
from schoolms.schemas.dashboard import ClassCard, DashboardView, SimpleItem, TeacherDashboard

TEACHER_PROFILE_MISSING = (
    "Teacher profile not found. Ask admin/employee to assign your teacher record."
)


class DashboardRoute(str, enum.Enum):
    ADMIN = "AdminDashboard"
    EMPLOYEE = "EmployeeDashboard"
    TEACHER = "TeacherDashboard"
    STUDENT = "StudentDashboard"
    DEFAULT = "Default"


ROLE_ROUTES: Dict[RoleName, DashboardRoute] = {
    RoleName.ADMIN: DashboardRoute.ADMIN,
    RoleName.EMPLOYEE: DashboardRoute.EMPLOYEE,
    RoleName.TEACHER: DashboardRoute.TEACHER,
    RoleName.STUDENT: DashboardRoute.STUDENT,
}


def route_for_role(role: Optional[str]) -> DashboardRoute:
    return ROLE_ROUTES.get(RoleName.parse(role), DashboardRoute.DEFAULT)


class DashboardService:
    """Builds the dashboard view for an authenticated principal"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_dashboard_for(self, principal: Principal) -> DashboardView:
        route = route_for_role(principal.role)

        if route == DashboardRoute.TEACHER:
            teacher_view = await self.get_teacher_dashboard(principal)
            return DashboardView(
                route=route.value,
                role=principal.role,
                display_name=teacher_view.teacher_name,
                teacher=teacher_view,
            )

        # Admin, employee, student and default pages carry no aggregates
        return DashboardView(
            route=route.value,
            role=principal.role,
            display_name=await self._display_name(principal),
        )

    async def _display_name(self, principal: Principal) -> str:
        user = await self.db.get(User, principal.user_id)
        return user.full_name if user else principal.email

    # ===== TEACHER =====

    async def get_teacher_dashboard(self, principal: Principal) -> TeacherDashboard:
        """
        Classes, subjects and student totals for the signed-in teacher.

        A teacher role without a profile row yields a degraded view rather
        than an error. TotalStudents sums per-class counts, so a student in
        two of the teacher's classes is counted twice.
        """
        result = await self.db.execute(
            select(Teacher)
            .where(Teacher.user_id == principal.user_id)
            .options(
                selectinload(Teacher.class_links)
                .selectinload(TeacherSchoolClass.school_class)
                .selectinload(SchoolClass.course),
                selectinload(Teacher.class_links)
                .selectinload(TeacherSchoolClass.school_class)
                .selectinload(SchoolClass.students),
                selectinload(Teacher.subject_links)
                .selectinload(TeacherSubject.subject),
            )
            .execution_options(populate_existing=True)
        )
        teacher = result.scalars().first()

        if teacher is None:
            logger.warning(f"[Dashboard] No teacher profile for user {principal.user_id}")
            return TeacherDashboard(teacher_name="Unknown", error=TEACHER_PROFILE_MISSING)

        classes = self._distinct_classes(teacher)
        subjects = self._distinct_subjects(teacher)

        class_cards = [
            ClassCard(
                id=school_class.id,
                class_name=school_class.class_name,
                course_name=school_class.course.name if school_class.course else "-",
                students_count=len(school_class.students),
                start_date=school_class.start_date,
                end_date=school_class.end_date,
            )
            for school_class in classes
        ]

        return TeacherDashboard(
            teacher_name=teacher.full_name,
            total_classes=len(class_cards),
            total_subjects=len(subjects),
            total_students=sum(card.students_count for card in class_cards),
            classes=class_cards,
            subjects=[SimpleItem(id=subject.id, name=subject.name) for subject in subjects],
        )

    @staticmethod
    def _distinct_classes(teacher: Teacher) -> List[SchoolClass]:
        by_id = {link.school_class.id: link.school_class for link in teacher.class_links}
        return sorted(by_id.values(), key=lambda c: (c.class_name, c.id))

    @staticmethod
    def _distinct_subjects(teacher: Teacher) -> List[Subject]:
        by_id = {link.subject.id: link.subject for link in teacher.subject_links}
        return sorted(by_id.values(), key=lambda s: (s.name, s.id))
