"""
Academic structure
- Course: a program of study, grouping subjects and class sections
- Subject: a teachable unit
- SchoolClass: a scheduled section that students belong to
"""

from sqlalchemy import Column, String, Boolean, DateTime, Integer, ForeignKey
from sqlalchemy.orm import relationship

from schoolms.core.database import Base
from schoolms.core.types import utcnow


class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    duration = Column(Integer, nullable=False, default=0)  # weeks
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Deleting a course leaves its classes in place with course_id NULL
    school_classes = relationship("SchoolClass", back_populates="course", passive_deletes=True)
    subject_links = relationship("CourseSubject", back_populates="course", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Course {self.name}>"


class Subject(Base):
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    credits = Column(Integer, nullable=False, default=0)
    total_classes = Column(Integer, nullable=False, default=0)

    course_links = relationship("CourseSubject", back_populates="subject", cascade="all, delete-orphan")
    teacher_links = relationship("TeacherSubject", back_populates="subject", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Subject {self.name}>"


class CourseSubject(Base):
    __tablename__ = "course_subjects"

    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), primary_key=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True)

    course = relationship("Course", back_populates="subject_links")
    subject = relationship("Subject", back_populates="course_links")


class SchoolClass(Base):
    __tablename__ = "school_classes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    class_name = Column(String(100), nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="SET NULL"), nullable=True)

    course = relationship("Course", back_populates="school_classes")
    # Deletion is restricted while students reference the class; never nullify them
    students = relationship("Student", back_populates="school_class", passive_deletes="all")
    teacher_links = relationship("TeacherSchoolClass", back_populates="school_class", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<SchoolClass {self.class_name}>"
