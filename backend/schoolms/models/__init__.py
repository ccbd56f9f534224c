# Re-export all models for convenient imports
from schoolms.models.user import User, Role, RoleName, UserRoleLink
from schoolms.models.academic import Course, Subject, CourseSubject, SchoolClass
from schoolms.models.staff import (
    Teacher,
    TeacherSubject,
    TeacherSchoolClass,
    TeacherStatus,
    AcademicDegree,
    Employee,
    EmployeeStatus,
    Department,
)
from schoolms.models.student import Student, Payment, PaymentStatus

__all__ = [
    # Identity
    "User",
    "Role",
    "RoleName",
    "UserRoleLink",
    # Academic
    "Course",
    "Subject",
    "CourseSubject",
    "SchoolClass",
    # Staff
    "Teacher",
    "TeacherSubject",
    "TeacherSchoolClass",
    "TeacherStatus",
    "AcademicDegree",
    "Employee",
    "EmployeeStatus",
    "Department",
    # Students & billing
    "Student",
    "Payment",
    "PaymentStatus",
]
