from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class ClassCard(BaseModel):
    id: int
    class_name: str
    course_name: str = "-"
    students_count: int = 0
    start_date: datetime
    end_date: datetime


class SimpleItem(BaseModel):
    id: int
    name: str


class TeacherDashboard(BaseModel):
    teacher_name: str
    total_classes: int = 0
    total_subjects: int = 0
    total_students: int = 0
    classes: List[ClassCard] = Field(default_factory=list)
    subjects: List[SimpleItem] = Field(default_factory=list)
    error: Optional[str] = None


class DashboardView(BaseModel):
    route: str
    role: Optional[str] = None
    display_name: str
    teacher: Optional[TeacherDashboard] = None
