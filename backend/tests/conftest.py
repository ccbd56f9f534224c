"""
School Management System - Test Configuration and Fixtures
"""
import os
from dataclasses import dataclass
from typing import AsyncGenerator, List, Optional
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool
from faker import Faker

# Set testing environment before the application reads its settings
os.environ['TESTING'] = 'true'
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test_school.db'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['LOG_FILE'] = ''
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['SEED_ON_STARTUP'] = 'false'
os.environ['SMTP_USER'] = ''
os.environ['SMTP_PASSWORD'] = ''

from schoolms.main import app
from schoolms.core.database import Base, get_db, enable_sqlite_foreign_keys
from schoolms.core.security import create_access_token
from schoolms.models.user import RoleName, User
from schoolms.services.email_service import EmailService, MailResponse, get_email_service
from schoolms.services.identity_provider import IdentityProvider

fake = Faker()

DEFAULT_PASSWORD = 'Passw0rd!'

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test_school.db'
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
enable_sqlite_foreign_keys(test_engine)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)


@dataclass
class SentMail:
    to_email: str
    subject: str
    html_content: str


class RecordingEmailService(EmailService):
    """Mail gateway that records messages instead of talking to SMTP"""

    def __init__(self):
        super().__init__()
        self.sent: List[SentMail] = []
        self.fail_with: Optional[str] = None

    async def send_email(self, to_email, subject, html_content, text_content=None) -> MailResponse:
        self.sent.append(SentMail(to_email, subject, html_content))
        if self.fail_with:
            return MailResponse(False, self.fail_with)
        return MailResponse(True, "Email sent.")


async def create_user(
    db: AsyncSession,
    role: RoleName,
    email: Optional[str] = None,
    password: str = DEFAULT_PASSWORD,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> User:
    """Create a confirmed user holding `role`"""
    identity = IdentityProvider(db)
    user = User(
        email=email or fake.unique.email(),
        first_name=first_name or fake.first_name(),
        last_name=last_name or fake.last_name(),
        email_confirmed=True,
    )
    result = await identity.create(user, password)
    assert result.succeeded, result.first_error
    await identity.ensure_role(role)
    await identity.assign_role(user, role)
    await db.commit()
    return user


def auth_headers_for(user: User, role: Optional[str]) -> dict:
    """Bearer headers for a session token as issued at login"""
    token = create_access_token({
        'sub': str(user.id),
        'email': user.email,
        'role': role,
        'stamp': user.security_stamp,
    })
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def mail_gateway() -> RecordingEmailService:
    return RecordingEmailService()


@pytest.fixture
async def client(db_session: AsyncSession, mail_gateway: RecordingEmailService) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database and mail overrides"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_service] = lambda: mail_gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, RoleName.ADMIN)


@pytest.fixture
async def teacher_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, RoleName.TEACHER)


@pytest.fixture
async def pending_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, RoleName.PENDING)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return auth_headers_for(admin_user, RoleName.ADMIN.value)


@pytest.fixture
def teacher_headers(teacher_user: User) -> dict:
    return auth_headers_for(teacher_user, RoleName.TEACHER.value)


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory: await make_user(RoleName.STUDENT, email=..., password=...)"""
    async def _make_user(role: RoleName, **kwargs) -> User:
        return await create_user(db_session, role, **kwargs)
    return _make_user


@pytest.fixture
def headers_for():
    """Factory: headers_for(user, 'Teacher')"""
    return auth_headers_for
