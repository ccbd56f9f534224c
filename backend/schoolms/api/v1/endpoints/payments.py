from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from schoolms.core.database import get_db
from schoolms.modules.auth.dependencies import get_billing_staff
from schoolms.schemas.auth import Principal
from schoolms.schemas.payment import PaymentCreate, PaymentResponse
from schoolms.services.payment_service import PaymentRepository

router = APIRouter()


@router.get("/pending", response_model=List[PaymentResponse])
async def list_pending_payments(
    staff: Principal = Depends(get_billing_staff),
    db: AsyncSession = Depends(get_db)
):
    return await PaymentRepository(db).get_pending_payments()


@router.get("/student/{student_id}", response_model=List[PaymentResponse])
async def list_student_payments(
    student_id: int,
    staff: Principal = Depends(get_billing_staff),
    db: AsyncSession = Depends(get_db)
):
    return await PaymentRepository(db).get_payments_by_student_id(student_id)


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    payment_data: PaymentCreate,
    staff: Principal = Depends(get_billing_staff),
    db: AsyncSession = Depends(get_db)
):
    return await PaymentRepository(db).add_payment(payment_data)
