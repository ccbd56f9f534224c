from typing import List
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolms.core.exceptions import PaymentValidationError, StudentNotFoundError
from schoolms.core.logging_config import logger
from schoolms.core.types import utcnow
from schoolms.models.student import Payment, PaymentStatus, Student
from schoolms.schemas.payment import MAX_PAYMENT_AMOUNT, MIN_PAYMENT_AMOUNT, PaymentCreate


class PaymentRepository:
    """Payment queries and inserts for the billing screens"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_payments_by_student_id(self, student_id: int) -> List[Payment]:
        result = await self.db.execute(
            select(Payment)
            .where(Payment.student_id == student_id)
            .order_by(Payment.payment_date.desc(), Payment.id.desc())
        )
        return list(result.scalars().all())

    async def get_pending_payments(self) -> List[Payment]:
        result = await self.db.execute(
            select(Payment)
            .where(Payment.status == PaymentStatus.PENDING)
            .order_by(Payment.payment_date, Payment.id)
        )
        return list(result.scalars().all())

    async def add_payment(self, data: PaymentCreate) -> Payment:
        amount = Decimal(data.amount)
        if not (MIN_PAYMENT_AMOUNT <= amount <= MAX_PAYMENT_AMOUNT):
            raise PaymentValidationError(
                f"Amount must be between {MIN_PAYMENT_AMOUNT} and {MAX_PAYMENT_AMOUNT}", field="amount"
            )

        if await self.db.get(Student, data.student_id) is None:
            raise StudentNotFoundError(data.student_id)

        payment = Payment(
            student_id=data.student_id,
            amount=amount,
            payment_date=data.payment_date or utcnow(),
            status=data.status,
            transaction_id=data.transaction_id,
            payment_method=data.payment_method,
        )
        self.db.add(payment)
        await self.db.commit()
        await self.db.refresh(payment)

        logger.info(f"[Payments] Recorded {payment.transaction_id} for student {payment.student_id}: {amount}")
        return payment
