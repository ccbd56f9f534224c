"""
Unit Tests for the Account Service
Tests for: login routing, admin registration, profile and password changes,
password recovery
"""
import logging
import re
import pytest
from urllib.parse import parse_qs, urlparse
from unittest.mock import AsyncMock
from sqlalchemy import func, select

from schoolms.core.config import settings
from schoolms.models.staff import Teacher
from schoolms.models.user import RoleName, User
from schoolms.schemas.auth import Principal, UserProfileUpdate, UserRegister
from schoolms.services.account_service import (
    AccountService,
    LOGIN_FAILED,
    PASSWORD_RESET_DONE,
    RECOVERY_SENT,
    UNKNOWN_EMAIL,
    USER_ALREADY_EXISTS,
    USER_CREATED,
    USER_CREATED_MAIL_FAILED,
    build_reset_link,
)
from schoolms.services.outcomes import OutcomeCode, OutcomeStatus

TEMP_PASSWORD_RE = re.compile(r"Temporary password:</b> (\S+)</p>")
RESET_LINK_RE = re.compile(r'href="([^"]+)"')


def principal_for(user: User, role: RoleName) -> Principal:
    return Principal(user_id=str(user.id), email=user.email, role=role.value)


def registration(email="new.teacher@example.com"):
    return UserRegister(email=email, first_name="Marta", last_name="Lopes")


def temporary_password_from(mail) -> str:
    return TEMP_PASSWORD_RE.search(mail.html_content).group(1)


def reset_link_from(mail) -> str:
    return RESET_LINK_RE.search(mail.html_content).group(1).replace("&amp;", "&")


class TestLogin:

    @pytest.mark.asyncio
    async def test_teacher_routes_to_teacher_dashboard(self, db_session, mail_gateway, make_user):
        user = await make_user(RoleName.TEACHER, email="t@example.com")
        service = AccountService(db_session, mail_gateway)

        outcome = await service.login("t@example.com", "Passw0rd!")

        assert outcome.succeeded
        assert outcome.route == "TeacherDashboard"
        assert outcome.role == "Teacher"
        assert outcome.access_token
        assert user.last_login is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role,route", [
        (RoleName.ADMIN, "AdminDashboard"),
        (RoleName.EMPLOYEE, "EmployeeDashboard"),
        (RoleName.STUDENT, "StudentDashboard"),
        (RoleName.PENDING, "Default"),
        (RoleName.ANONYMOUS, "Default"),
    ])
    async def test_route_by_role(self, db_session, mail_gateway, make_user, role, route):
        await make_user(role, email="someone@example.com")
        service = AccountService(db_session, mail_gateway)

        outcome = await service.login("someone@example.com", "Passw0rd!")

        assert outcome.route == route

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_look_the_same(self, db_session, mail_gateway, make_user):
        await make_user(RoleName.TEACHER, email="t@example.com")
        service = AccountService(db_session, mail_gateway)

        wrong_password = await service.login("t@example.com", "wrong-password")
        unknown_email = await service.login("nobody@example.com", "Passw0rd!")

        for outcome in (wrong_password, unknown_email):
            assert outcome.status == OutcomeStatus.FAILED
            assert outcome.code == OutcomeCode.LOGIN_FAILED
            assert outcome.message == LOGIN_FAILED
            assert outcome.access_token is None

    @pytest.mark.asyncio
    async def test_logout_rotates_stamp(self, db_session, mail_gateway, make_user):
        user = await make_user(RoleName.TEACHER)
        stamp = user.security_stamp
        service = AccountService(db_session, mail_gateway)

        outcome = await service.logout(principal_for(user, RoleName.TEACHER))

        assert outcome.succeeded
        assert user.security_stamp != stamp


class TestRegisterByAdmin:

    @pytest.mark.asyncio
    async def test_creates_pending_confirmed_user_and_mails_password(self, db_session, mail_gateway, admin_user):
        service = AccountService(db_session, mail_gateway)

        outcome = await service.register_by_admin(principal_for(admin_user, RoleName.ADMIN), registration())

        assert outcome.status == OutcomeStatus.SUCCESS
        assert outcome.message == USER_CREATED
        user = await service.identity.find_by_email("new.teacher@example.com")
        assert user.email_confirmed is True
        assert await service.identity.get_role(user) == "Pending"
        assert len(mail_gateway.sent) == 1
        assert mail_gateway.sent[0].to_email == "new.teacher@example.com"

    @pytest.mark.asyncio
    async def test_temporary_password_only_in_mail(self, db_session, mail_gateway, admin_user, caplog):
        service = AccountService(db_session, mail_gateway)

        with caplog.at_level(logging.DEBUG):
            outcome = await service.register_by_admin(principal_for(admin_user, RoleName.ADMIN), registration())

        password = temporary_password_from(mail_gateway.sent[0])
        assert password.startswith(settings.TEMP_PASSWORD_PREFIX)
        assert password not in repr(outcome)
        assert password not in caplog.text

        login = await service.login("new.teacher@example.com", password)
        assert login.succeeded
        assert login.route == "Default"

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, db_session, mail_gateway, admin_user, make_user):
        await make_user(RoleName.TEACHER, email="new.teacher@example.com")
        service = AccountService(db_session, mail_gateway)

        outcome = await service.register_by_admin(principal_for(admin_user, RoleName.ADMIN), registration())

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.code == OutcomeCode.USER_ALREADY_EXISTS
        assert outcome.message == USER_ALREADY_EXISTS
        assert mail_gateway.sent == []
        count = await db_session.scalar(
            select(func.count()).select_from(User).where(User.email == "new.teacher@example.com")
        )
        assert count == 1

    @pytest.mark.asyncio
    async def test_non_admin_rejected(self, db_session, mail_gateway, teacher_user):
        service = AccountService(db_session, mail_gateway)

        outcome = await service.register_by_admin(principal_for(teacher_user, RoleName.TEACHER), registration())

        assert outcome.code == OutcomeCode.NOT_AUTHORIZED
        assert await service.identity.find_by_email("new.teacher@example.com") is None

    @pytest.mark.asyncio
    async def test_mail_failure_keeps_account(self, db_session, mail_gateway, admin_user):
        mail_gateway.fail_with = "Connection refused"
        service = AccountService(db_session, mail_gateway)

        outcome = await service.register_by_admin(principal_for(admin_user, RoleName.ADMIN), registration())

        assert outcome.succeeded
        assert outcome.status == OutcomeStatus.SUCCESS_WITH_NOTIFICATION_FAILURE
        assert outcome.code == OutcomeCode.ACCOUNT_CREATED_MAIL_FAILED
        assert outcome.message == USER_CREATED_MAIL_FAILED
        assert outcome.detail == "Connection refused"
        assert await service.identity.find_by_email("new.teacher@example.com") is not None


    @pytest.mark.asyncio
    async def test_duplicate_rejected_by_store(self, db_session, mail_gateway, admin_user, make_user):
        await make_user(RoleName.TEACHER, email="new.teacher@example.com")
        service = AccountService(db_session, mail_gateway)
        # Both lookups miss, as when a concurrent registration commits first
        service.identity.find_by_email = AsyncMock(return_value=None)

        outcome = await service.register_by_admin(principal_for(admin_user, RoleName.ADMIN), registration())

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.code == OutcomeCode.USER_ALREADY_EXISTS
        assert outcome.message == USER_ALREADY_EXISTS
        assert mail_gateway.sent == []
        count = await db_session.scalar(
            select(func.count()).select_from(User).where(User.email == "new.teacher@example.com")
        )
        assert count == 1


class TestAssignRole:

    @pytest.mark.asyncio
    async def test_admin_promotes_pending_user(self, db_session, mail_gateway, admin_user, pending_user):
        await ensure_all_roles(db_session, mail_gateway)
        stamp = pending_user.security_stamp
        service = AccountService(db_session, mail_gateway)

        outcome = await service.assign_role(
            principal_for(admin_user, RoleName.ADMIN), str(pending_user.id), RoleName.TEACHER
        )

        assert outcome.succeeded
        assert await service.identity.get_role(pending_user) == "Teacher"
        assert pending_user.security_stamp != stamp

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session, mail_gateway, admin_user):
        service = AccountService(db_session, mail_gateway)

        outcome = await service.assign_role(
            principal_for(admin_user, RoleName.ADMIN), "00000000-0000-0000-0000-000000000000", RoleName.TEACHER
        )

        assert outcome.code == OutcomeCode.USER_NOT_FOUND


async def ensure_all_roles(db_session, mail_gateway):
    identity = AccountService(db_session, mail_gateway).identity
    for role in RoleName:
        await identity.ensure_role(role)
    await db_session.commit()


class TestProfile:

    @pytest.mark.asyncio
    async def test_teacher_profile_change_propagates(self, db_session, mail_gateway, teacher_user):
        db_session.add(Teacher(user_id=teacher_user.id, first_name="Old", last_name="Name"))
        await db_session.commit()
        service = AccountService(db_session, mail_gateway)

        outcome = await service.change_own_profile(
            principal_for(teacher_user, RoleName.TEACHER),
            UserProfileUpdate(first_name="New", last_name="Surname", phone_number="912345678"),
        )

        assert outcome.succeeded
        teacher = await db_session.scalar(select(Teacher).where(Teacher.user_id == teacher_user.id))
        assert teacher.full_name == "New Surname"
        assert teacher_user.phone_number == "912345678"

    @pytest.mark.asyncio
    async def test_get_profile_includes_role(self, db_session, mail_gateway, teacher_user):
        service = AccountService(db_session, mail_gateway)

        profile = await service.get_profile(principal_for(teacher_user, RoleName.TEACHER))

        assert profile.email == teacher_user.email
        assert profile.role == "Teacher"


class TestPasswords:

    @pytest.mark.asyncio
    async def test_change_password_with_wrong_current(self, db_session, mail_gateway, teacher_user):
        service = AccountService(db_session, mail_gateway)

        outcome = await service.change_password(
            principal_for(teacher_user, RoleName.TEACHER), "wrong", "NewPass1!"
        )

        assert outcome.code == OutcomeCode.PASSWORD_CHANGE_REJECTED

    @pytest.mark.asyncio
    async def test_change_password(self, db_session, mail_gateway, make_user):
        user = await make_user(RoleName.TEACHER, email="t@example.com")
        service = AccountService(db_session, mail_gateway)

        outcome = await service.change_password(principal_for(user, RoleName.TEACHER), "Passw0rd!", "NewPass1!")

        assert outcome.succeeded
        assert (await service.login("t@example.com", "NewPass1!")).succeeded

    @pytest.mark.asyncio
    async def test_change_first_password(self, db_session, mail_gateway, admin_user):
        service = AccountService(db_session, mail_gateway)
        await service.register_by_admin(principal_for(admin_user, RoleName.ADMIN), registration())
        temporary = temporary_password_from(mail_gateway.sent[0])

        outcome = await service.change_first_password("new.teacher@example.com", temporary, "MyOwnPass1!")

        assert outcome.succeeded
        assert not (await service.login("new.teacher@example.com", temporary)).succeeded
        assert (await service.login("new.teacher@example.com", "MyOwnPass1!")).succeeded

    @pytest.mark.asyncio
    async def test_change_first_password_unknown_email_is_generic(self, db_session, mail_gateway):
        service = AccountService(db_session, mail_gateway)

        outcome = await service.change_first_password("nobody@example.com", "Ab3!00000000", "MyOwnPass1!")

        assert outcome.code == OutcomeCode.PASSWORD_CHANGE_REJECTED
        assert outcome.message == "Failed to change the password."


class TestPasswordRecovery:

    @pytest.mark.asyncio
    async def test_unknown_email_revealed(self, db_session, mail_gateway, monkeypatch):
        monkeypatch.setattr(settings, "RECOVERY_REVEAL_UNKNOWN_EMAIL", True)
        service = AccountService(db_session, mail_gateway)

        outcome = await service.request_password_recovery("nobody@example.com")

        assert outcome.code == OutcomeCode.UNKNOWN_EMAIL
        assert outcome.message == UNKNOWN_EMAIL
        assert mail_gateway.sent == []

    @pytest.mark.asyncio
    async def test_unknown_email_hidden(self, db_session, mail_gateway, monkeypatch):
        monkeypatch.setattr(settings, "RECOVERY_REVEAL_UNKNOWN_EMAIL", False)
        service = AccountService(db_session, mail_gateway)

        outcome = await service.request_password_recovery("nobody@example.com")

        assert outcome.status == OutcomeStatus.SUCCESS
        assert outcome.message == RECOVERY_SENT
        assert mail_gateway.sent == []

    @pytest.mark.asyncio
    async def test_reset_link_carries_token_and_email(self, db_session, mail_gateway, make_user):
        await make_user(RoleName.STUDENT, email="s@example.com")
        service = AccountService(db_session, mail_gateway)

        outcome = await service.request_password_recovery("s@example.com")

        assert outcome.status == OutcomeStatus.SUCCESS
        query = parse_qs(urlparse(reset_link_from(mail_gateway.sent[0])).query)
        assert query["email"] == ["s@example.com"]
        assert query["token"][0]

    @pytest.mark.asyncio
    async def test_full_reset_flow_token_single_use(self, db_session, mail_gateway, make_user):
        user = await make_user(RoleName.STUDENT, email="s@example.com")
        stamp = user.security_stamp
        service = AccountService(db_session, mail_gateway)
        await service.request_password_recovery("s@example.com")
        token = parse_qs(urlparse(reset_link_from(mail_gateway.sent[0])).query)["token"][0]

        first = await service.reset_password("s@example.com", token, "Recovered1!")
        second = await service.reset_password("s@example.com", token, "Again1234!")

        assert first.message == PASSWORD_RESET_DONE
        assert second.code == OutcomeCode.INVALID_OR_EXPIRED_TOKEN
        assert user.security_stamp != stamp
        assert (await service.login("s@example.com", "Recovered1!")).succeeded

    @pytest.mark.asyncio
    async def test_recovery_mail_failure(self, db_session, mail_gateway, make_user):
        await make_user(RoleName.STUDENT, email="s@example.com")
        mail_gateway.fail_with = "SMTP down"
        service = AccountService(db_session, mail_gateway)

        outcome = await service.request_password_recovery("s@example.com")

        assert outcome.status == OutcomeStatus.SUCCESS_WITH_NOTIFICATION_FAILURE
        assert outcome.code == OutcomeCode.RECOVERY_MAIL_FAILED

    @pytest.mark.asyncio
    async def test_reset_for_unknown_email(self, db_session, mail_gateway):
        service = AccountService(db_session, mail_gateway)

        outcome = await service.reset_password("nobody@example.com", "token", "Recovered1!")

        assert outcome.code == OutcomeCode.USER_NOT_FOUND

    @pytest.mark.asyncio
    async def test_change_password_voids_pending_reset_link(self, db_session, mail_gateway, make_user):
        user = await make_user(RoleName.STUDENT, email="s@example.com")
        service = AccountService(db_session, mail_gateway)
        await service.request_password_recovery("s@example.com")
        token = parse_qs(urlparse(reset_link_from(mail_gateway.sent[0])).query)["token"][0]

        changed = await service.change_password(principal_for(user, RoleName.STUDENT), "Passw0rd!", "Chosen99!")
        reset = await service.reset_password("s@example.com", token, "Attacker1!")

        assert changed.succeeded
        assert reset.code == OutcomeCode.INVALID_OR_EXPIRED_TOKEN
        assert (await service.login("s@example.com", "Chosen99!")).succeeded
        assert not (await service.login("s@example.com", "Attacker1!")).succeeded

    @pytest.mark.asyncio
    async def test_first_password_change_voids_pending_reset_link(self, db_session, mail_gateway, admin_user):
        service = AccountService(db_session, mail_gateway)
        await service.register_by_admin(principal_for(admin_user, RoleName.ADMIN), registration())
        temporary = temporary_password_from(mail_gateway.sent[0])
        await service.request_password_recovery("new.teacher@example.com")
        token = parse_qs(urlparse(reset_link_from(mail_gateway.sent[1])).query)["token"][0]

        await service.change_first_password("new.teacher@example.com", temporary, "MyOwnPass1!")
        reset = await service.reset_password("new.teacher@example.com", token, "Attacker1!")

        assert reset.code == OutcomeCode.INVALID_OR_EXPIRED_TOKEN

    def test_build_reset_link_encodes_values(self):
        link = build_reset_link("a+b/c", "x+y@example.com")

        query = parse_qs(urlparse(link).query)
        assert query["token"] == ["a+b/c"]
        assert query["email"] == ["x+y@example.com"]
