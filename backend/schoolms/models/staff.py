"""
Staff profiles
- Teacher, with subject and class assignments
- Employee
Both reference exactly one User; the user cannot be deleted while the profile exists.
"""

from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum

from schoolms.core.database import Base
from schoolms.core.types import GUID, utcnow


class TeacherStatus(str, enum.Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    ON_LEAVE = "OnLeave"


class AcademicDegree(str, enum.Enum):
    HIGH_SCHOOL = "HighSchool"
    BACHELOR = "Bachelor"
    MASTERS_DEGREE = "MastersDegree"
    DOCTORATE = "Doctorate"


class EmployeeStatus(str, enum.Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    ON_LEAVE = "OnLeave"


class Department(str, enum.Enum):
    ADMINISTRATION = "Administration"
    FINANCE = "Finance"
    HUMAN_RESOURCES = "HumanResources"
    IT = "IT"
    MAINTENANCE = "Maintenance"


class Teacher(Base):
    __tablename__ = "teachers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="RESTRICT"), unique=True, nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    hire_date = Column(DateTime, default=utcnow, nullable=False)
    status = Column(SQLEnum(TeacherStatus), default=TeacherStatus.ACTIVE, nullable=False)
    academic_degree = Column(SQLEnum(AcademicDegree), nullable=True)

    user = relationship("User")
    subject_links = relationship("TeacherSubject", back_populates="teacher", cascade="all, delete-orphan")
    class_links = relationship("TeacherSchoolClass", back_populates="teacher", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Teacher {self.full_name}>"


class TeacherSubject(Base):
    __tablename__ = "teacher_subjects"

    teacher_id = Column(Integer, ForeignKey("teachers.id", ondelete="CASCADE"), primary_key=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True)

    teacher = relationship("Teacher", back_populates="subject_links")
    subject = relationship("Subject", back_populates="teacher_links")


class TeacherSchoolClass(Base):
    __tablename__ = "teacher_school_classes"

    teacher_id = Column(Integer, ForeignKey("teachers.id", ondelete="CASCADE"), primary_key=True)
    school_class_id = Column(Integer, ForeignKey("school_classes.id", ondelete="CASCADE"), primary_key=True)

    teacher = relationship("Teacher", back_populates="class_links")
    school_class = relationship("SchoolClass", back_populates="teacher_links")


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="RESTRICT"), unique=True, nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    department = Column(SQLEnum(Department), nullable=False)
    hire_date = Column(DateTime, default=utcnow, nullable=False)
    status = Column(SQLEnum(EmployeeStatus), default=EmployeeStatus.ACTIVE, nullable=False)
    phone_number = Column(String(20), nullable=True)

    user = relationship("User")

    def __repr__(self):
        return f"<Employee {self.first_name} {self.last_name}>"
