"""
Database Seed Data Module

Baseline data the application needs before it can be used: roles, one
account per role, and a minimal academic graph. Every step checks whether
its data already exists, so running it on each startup is safe.

Run with: python -m schoolms.db.seed_data
"""
import asyncio
from datetime import timedelta
from typing import Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolms.core.database import get_session_local, init_db, close_db
from schoolms.core.logging_config import logger
from schoolms.core.types import utcnow
from schoolms.models.academic import Course, CourseSubject, SchoolClass, Subject
from schoolms.models.staff import (
    AcademicDegree,
    Department,
    Employee,
    EmployeeStatus,
    Teacher,
    TeacherSchoolClass,
    TeacherStatus,
    TeacherSubject,
)
from schoolms.models.user import RoleName, User
from schoolms.services.identity_provider import IdentityProvider


# ==================== Seed Data Constants ====================

SEED_ROLES = [
    RoleName.ADMIN,
    RoleName.STUDENT,
    RoleName.TEACHER,
    RoleName.EMPLOYEE,
    RoleName.ANONYMOUS,
    RoleName.PENDING,
]

SEED_USERS = [
    {"email": "admin@school.com", "first_name": "Admin", "last_name": "User", "password": "Admin123!", "role": RoleName.ADMIN},
    {"email": "student1@school.com", "first_name": "Student1", "last_name": "User", "password": "Student123!", "role": RoleName.STUDENT},
    {"email": "student2@school.com", "first_name": "Student2", "last_name": "User", "password": "Student123!", "role": RoleName.STUDENT},
    {"email": "teacher1@school.com", "first_name": "Teacher1", "last_name": "User", "password": "Teacher123!", "role": RoleName.TEACHER},
    {"email": "employee1@school.com", "first_name": "Employee1", "last_name": "User", "password": "Employee123!", "role": RoleName.EMPLOYEE},
]

SEED_SUBJECTS = [
    {"name": "Algebra", "description": "Basic Algebra", "credits": 5, "total_classes": 30},
    {"name": "Physics", "description": "Basic Physics", "credits": 4, "total_classes": 25},
]

# course name -> (description, class name, subject name)
SEED_COURSES = {
    "Mathematics": ("Mathematics Course", "Class A", "Algebra"),
    "Science": ("Science Course", "Class B", "Physics"),
}

CLASS_LENGTH = timedelta(days=182)  # six months


async def _count(db: AsyncSession, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


async def _by_name(db: AsyncSession, model, column, name: str):
    return (await db.execute(select(model).where(column == name))).scalars().first()


# ==================== Seed Functions ====================

async def seed_roles(db: AsyncSession) -> None:
    identity = IdentityProvider(db)
    for role in SEED_ROLES:
        await identity.ensure_role(role)
    await db.commit()


async def seed_user(db: AsyncSession, email: str, first_name: str, last_name: str,
                    password: str, role: RoleName) -> Optional[User]:
    """Return the existing account, or create it with its role"""
    identity = IdentityProvider(db)

    user = await identity.find_by_email(email)
    if user:
        return user

    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        email_confirmed=True,
        created_at=utcnow(),
    )
    result = await identity.create(user, password)
    if not result.succeeded:
        logger.error(f"[Seed] Could not create {email}: {result.first_error}")
        return None

    await identity.assign_role(user, role)
    await db.commit()
    logger.info(f"[Seed] Created user {email} ({role.value})")
    return user


async def seed_users(db: AsyncSession) -> Dict[str, Optional[User]]:
    users = {}
    for data in SEED_USERS:
        users[data["email"]] = await seed_user(
            db, data["email"], data["first_name"], data["last_name"], data["password"], data["role"]
        )
    return users


async def seed_school_classes(db: AsyncSession) -> None:
    if await _count(db, SchoolClass):
        return

    start = utcnow()
    for name in ("Class A", "Class B"):
        db.add(SchoolClass(class_name=name, start_date=start, end_date=start + CLASS_LENGTH))
    await db.commit()
    logger.info("[Seed] Created school classes")


async def seed_subjects(db: AsyncSession) -> None:
    if await _count(db, Subject):
        return

    for data in SEED_SUBJECTS:
        db.add(Subject(**data))
    await db.commit()
    logger.info("[Seed] Created subjects")


async def seed_courses(db: AsyncSession) -> None:
    if await _count(db, Course):
        return

    now = utcnow()
    for name, (description, class_name, subject_name) in SEED_COURSES.items():
        course = Course(
            name=name,
            description=description,
            duration=16,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        db.add(course)
        await db.flush()

        school_class = await _by_name(db, SchoolClass, SchoolClass.class_name, class_name)
        if school_class:
            school_class.course_id = course.id

        subject = await _by_name(db, Subject, Subject.name, subject_name)
        if subject:
            db.add(CourseSubject(course_id=course.id, subject_id=subject.id))

    await db.commit()
    logger.info("[Seed] Created courses")


async def seed_teacher(db: AsyncSession, teacher_user: Optional[User]) -> None:
    if teacher_user is None or await _count(db, Teacher):
        return

    teacher = Teacher(
        first_name="Teacher1",
        last_name="User",
        user_id=teacher_user.id,
        hire_date=utcnow(),
        status=TeacherStatus.ACTIVE,
        academic_degree=AcademicDegree.MASTERS_DEGREE,
    )
    db.add(teacher)
    await db.flush()

    for subject_name in ("Algebra", "Physics"):
        subject = await _by_name(db, Subject, Subject.name, subject_name)
        if subject:
            db.add(TeacherSubject(teacher_id=teacher.id, subject_id=subject.id))

    class_a = await _by_name(db, SchoolClass, SchoolClass.class_name, "Class A")
    if class_a:
        db.add(TeacherSchoolClass(teacher_id=teacher.id, school_class_id=class_a.id))

    await db.commit()
    logger.info("[Seed] Created teacher profile")


async def seed_employee(db: AsyncSession, employee_user: Optional[User]) -> None:
    if employee_user is None or await _count(db, Employee):
        return

    db.add(Employee(
        first_name="Employee1",
        last_name="User",
        user_id=employee_user.id,
        department=Department.ADMINISTRATION,
        hire_date=utcnow(),
        status=EmployeeStatus.ACTIVE,
        phone_number="1234567890",
    ))
    await db.commit()
    logger.info("[Seed] Created employee profile")


async def seed_database(db: AsyncSession) -> None:
    """
    Run every seed step in dependency order: roles before users, classes
    and subjects before courses, users before profiles.
    """
    await seed_roles(db)
    users = await seed_users(db)
    await seed_school_classes(db)
    await seed_subjects(db)
    await seed_courses(db)
    await seed_teacher(db, users.get("teacher1@school.com"))
    await seed_employee(db, users.get("employee1@school.com"))


async def seed_all() -> None:
    """Seed using a fresh session"""
    logger.info("[Seed] Checking baseline data...")
    session_factory = get_session_local()
    async with session_factory() as db:
        await seed_database(db)
    logger.info("[Seed] Baseline data ready")


async def _run() -> None:
    await init_db()
    try:
        await seed_all()
    finally:
        await close_db()


def main() -> None:
    asyncio.run(_run())


if __name__ == "__main__":
    main()
