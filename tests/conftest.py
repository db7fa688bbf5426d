# tests/conftest.py
import os
import tempfile

# Настройки читаются при импорте app.core.config - окружение задаем до импортов приложения
os.environ.setdefault("DATABASE_USER", "test")
os.environ.setdefault("DATABASE_PASSWORD", "test")
os.environ.setdefault("DATABASE_HOST", "localhost")
os.environ.setdefault("DATABASE_PORT", "5432")
os.environ.setdefault("DATABASE_NAME", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["EMAIL_DEV_MODE"] = "true"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="uploads-")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from app.db.session import Base
from app.models import user, referral, core_team, transaction  # Импортируем все модели для создания таблиц
from app.clients.token_gateway import TransferReceipt, get_token_gateway
from app.core.exceptions import GatewayError, TransferTimeout
from app.dependencies import get_db
from app.main import app
from app.models.user import User
from app.models.referral import Referral
from app.models.core_team import CoreTeamMember
from app.services.auth import create_access_token, hash_password

# In-memory SQLite; StaticPool - одно соединение на все потоки (sync-эндпоинты идут в threadpool)
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}, poolclass=StaticPool
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

DEFAULT_PASSWORD = "Secret123!"


class FakeGateway:
    """Шлюз без блокчейна: запоминает вызовы, умеет падать и "зависать"."""

    def __init__(self):
        self.calls = []
        self.fail_for = set()
        self.timeout_for = set()
        self.chain_statuses = {}
        self._counter = 0

    async def transfer(self, wallet_address, amount, timeout=None):
        self.calls.append((wallet_address, amount))
        self._counter += 1
        tx_hash = f"0x{self._counter:064x}"
        if wallet_address in self.fail_for:
            raise GatewayError("insufficient funds")
        if wallet_address in self.timeout_for:
            raise TransferTimeout(tx_hash)
        return TransferReceipt(hash=tx_hash)

    async def get_transfer_status(self, tx_hash):
        status = self.chain_statuses.get(tx_hash, "pending")
        if status == "error":
            raise GatewayError("rpc unavailable", tx_hash=tx_hash)
        return status


@pytest.fixture(scope="function")
def db_session() -> Session:
    """
    Фикстура для создания чистой базы данных для каждого теста.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def make_user(db_session):
    """Фабрика пользователей. Пароль у всех DEFAULT_PASSWORD."""
    counter = {"n": 0}
    password_hash = hash_password(DEFAULT_PASSWORD)

    def _make_user(wallet: str | None = "auto", referrer: User | None = None, core_team: bool = False, **fields) -> User:
        counter["n"] += 1
        n = counter["n"]
        data = {
            "first_name": f"User{n}",
            "last_name": "Tester",
            "email": f"user{n}@mail.com",
            "password": password_hash,
            "is_verified": True,
            "referral_code": f"code{n}",
            "wallet_address": f"0x{n:040x}" if wallet == "auto" else wallet,
        }
        data.update(fields)
        new_user = User(**data)
        db_session.add(new_user)
        db_session.commit()
        if referrer is not None:
            db_session.add(Referral(referrer_id=referrer.id, referred_id=new_user.id))
        if core_team:
            db_session.add(CoreTeamMember(user_id=new_user.id))
        db_session.commit()
        db_session.refresh(new_user)
        return new_user

    return _make_user


@pytest.fixture
def default_password() -> str:
    return DEFAULT_PASSWORD


@pytest.fixture
def auth_headers():
    """Заголовок Authorization с валидным JWT для пользователя."""
    def _auth_headers(target: User) -> dict:
        token = create_access_token(data={"sub": str(target.id), "email": target.email})
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
async def client(db_session, gateway):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_gateway] = lambda: gateway
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
