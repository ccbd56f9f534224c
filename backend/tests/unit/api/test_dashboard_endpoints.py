"""
API Tests for Dashboard and Payment Endpoints
Tests for: role gating, role routing, billing access
"""
import pytest
from httpx import AsyncClient

from schoolms.models.student import Student
from schoolms.models.user import RoleName


class TestDashboard:

    @pytest.mark.asyncio
    async def test_teacher_dashboard_without_profile(self, client: AsyncClient, teacher_headers):
        response = await client.get("/api/v1/dashboard/teacher", headers=teacher_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["teacher_name"] == "Unknown"
        assert data["error"].startswith("Teacher profile not found")

    @pytest.mark.asyncio
    async def test_teacher_page_forbidden_for_admin(self, client: AsyncClient, admin_headers):
        response = await client.get("/api/v1/dashboard/teacher", headers=admin_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_page(self, client: AsyncClient, admin_headers):
        response = await client.get("/api/v1/dashboard/admin", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["route"] == "AdminDashboard"

    @pytest.mark.asyncio
    async def test_pending_user_gets_default(self, client: AsyncClient, pending_user, headers_for):
        headers = headers_for(pending_user, "Pending")

        response = await client.get("/api/v1/dashboard", headers=headers)

        assert response.status_code == 200
        assert response.json()["route"] == "Default"
        assert (await client.get("/api/v1/dashboard/student", headers=headers)).status_code == 403

    @pytest.mark.asyncio
    async def test_dashboard_requires_token(self, client: AsyncClient):
        response = await client.get("/api/v1/dashboard")

        assert response.status_code == 401


class TestPayments:

    @pytest.mark.asyncio
    async def test_teacher_cannot_list_payments(self, client: AsyncClient, teacher_headers):
        response = await client.get("/api/v1/payments/pending", headers=teacher_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_employee_records_payment(self, client: AsyncClient, db_session, make_user, headers_for):
        employee = await make_user(RoleName.EMPLOYEE)
        student_user = await make_user(RoleName.STUDENT)
        student = Student(user_id=student_user.id, first_name="Ana", last_name="Silva")
        db_session.add(student)
        await db_session.commit()
        headers = headers_for(employee, "Employee")

        created = await client.post("/api/v1/payments", headers=headers, json={
            "student_id": student.id,
            "amount": "150.00",
            "transaction_id": "TX-100",
            "payment_method": "Card",
        })
        pending = await client.get("/api/v1/payments/pending", headers=headers)
        by_student = await client.get(f"/api/v1/payments/student/{student.id}", headers=headers)

        assert created.status_code == 201
        assert created.json()["status"] == "Pendente"
        assert [p["transaction_id"] for p in pending.json()] == ["TX-100"]
        assert len(by_student.json()) == 1

    @pytest.mark.asyncio
    async def test_amount_over_limit_rejected(self, client: AsyncClient, admin_headers):
        response = await client.post("/api/v1/payments", headers=admin_headers, json={
            "student_id": 1,
            "amount": "10000.01",
            "transaction_id": "TX-1",
            "payment_method": "Card",
        })

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_student(self, client: AsyncClient, admin_headers):
        response = await client.post("/api/v1/payments", headers=admin_headers, json={
            "student_id": 999,
            "amount": "10.00",
            "transaction_id": "TX-1",
            "payment_method": "Card",
        })

        assert response.status_code == 404
