import os

# Configure the process before anything imports app.core.config.
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret-do-not-use-in-production")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret-do-not-use-in-production")
os.environ.setdefault("RESET_TOKEN_SECRET", "test-reset-secret-do-not-use-in-production")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from app.core.config import get_settings  # noqa: E402
from app.db.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.principal_models import PrincipalType  # noqa: E402
from app.models.refresh_session_models import RefreshSession  # noqa: E402
from app.models.verification_code_models import VerificationCode  # noqa: E402
from app.services.dependencies import get_mailer  # noqa: E402
from app.services.mail_service import Mailer  # noqa: E402
from app.services.principal_service import PrincipalRepository  # noqa: E402
from app.services.token_service import TokenConfig, TokenService  # noqa: E402
from app.utils.hashing import get_password_hash  # noqa: E402

API = "/api/v1/auth"
COOKIE = "express_jwt"


class RecordingMailer(Mailer):
    """Keeps notifications in memory instead of delivering them."""

    def __init__(self, settings):
        super().__init__(settings)
        self.sent = []

    def send_code(self, notification):
        self.sent.append(notification)
        return True


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'auth.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def tokens(settings):
    return TokenService(TokenConfig.from_settings(settings))


@pytest.fixture
def mailer(settings):
    return RecordingMailer(settings)


@pytest.fixture
def client(session_factory, mailer):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_principal(db):
    """Insert a committed principal of any type."""

    def _make(
        kind=PrincipalType.teacher,
        email="teacher@school.edu",
        password="Secret123!",
        name="Test Principal",
        suspended=False,
    ):
        principal = PrincipalRepository(db).create(
            kind,
            name=name,
            email=email,
            password_hash=get_password_hash(password),
        )
        principal.is_suspended = suspended
        db.commit()
        db.refresh(principal)
        return principal

    return _make


@pytest.fixture
def count_sessions(session_factory):
    def _count(principal_id):
        with session_factory() as session:
            return (
                session.query(RefreshSession)
                .filter(RefreshSession.principal_id == principal_id)
                .count()
            )

    return _count


@pytest.fixture
def codes_for(session_factory):
    def _codes(principal_id, purpose=None):
        with session_factory() as session:
            query = session.query(VerificationCode).filter(
                VerificationCode.principal_id == principal_id
            )
            if purpose is not None:
                query = query.filter(VerificationCode.purpose == purpose)
            rows = query.all()
            session.expunge_all()
            return rows

    return _codes


@pytest.fixture
def login(client):
    """POST /login and return (response, refresh cookie value)."""

    def _login(email, password="Secret123!", role="teacher", headers=None):
        client.cookies.clear()
        response = client.post(
            f"{API}/login",
            json={"email": email, "password": password, "role": role},
            headers=headers or {},
        )
        return response, response.cookies.get(COOKIE)

    return _login
