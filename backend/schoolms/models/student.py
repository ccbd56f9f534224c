from sqlalchemy import (
    Column, String, DateTime, Integer, Numeric, ForeignKey, CheckConstraint
)
from sqlalchemy.orm import relationship

from schoolms.core.database import Base
from schoolms.core.types import GUID, utcnow


class Student(Base):
    """Student profile. Belongs to at most one class at a time."""
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="RESTRICT"), unique=True, nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    address = Column(String(100), nullable=True)
    phone_number = Column(String(20), nullable=True)
    enrollment_date = Column(DateTime, default=utcnow, nullable=False)
    school_class_id = Column(Integer, ForeignKey("school_classes.id", ondelete="RESTRICT"), nullable=True)

    user = relationship("User")
    school_class = relationship("SchoolClass", back_populates="students")
    payments = relationship("Payment", back_populates="student", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Student {self.full_name}>"


class PaymentStatus:
    """Status values written by the billing workflow"""
    PENDING = "Pendente"
    PAID = "Pago"


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount > 0 AND amount <= 10000", name="ck_payments_amount_range"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(18, 2), nullable=False)
    payment_date = Column(DateTime, default=utcnow, nullable=False)
    status = Column(String(20), nullable=False, default=PaymentStatus.PENDING)
    transaction_id = Column(String(50), nullable=False)
    payment_method = Column(String(20), nullable=False)

    student = relationship("Student", back_populates="payments")

    def __repr__(self):
        return f"<Payment {self.transaction_id} {self.amount} {self.status}>"
