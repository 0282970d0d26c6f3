# tests/conftest.py
import os

os.environ.setdefault("JWT_SECRET", "test-secret-change-me-123")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import uuid

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from capacita.main import app
from capacita.core.db import (
    engine as global_engine,
    engine_options,
    clear_db_session_override,
    reset_session_factory,
    set_db_session_override,
    set_session_factory,
)
from capacita.core.settings import settings
from capacita.models.base import Base
from capacita.models.empresas import Empresas
from capacita.models.perfis import Perfis
from capacita.models.roles import RolesEnum
from capacita.models.treinamentos import StatusTreinamento, Treinamentos
from capacita.services import rate_limiter
from capacita.services.security import generate_csrf_token, hash_password, sign_session
from capacita.services.study_sessions import registry


app.config.update({"TESTING": True})


@pytest.fixture(scope="function")
def engine():
    eng = create_engine(settings.url, **engine_options(settings.url))
    Base.metadata.create_all(bind=eng)
    Base.metadata.create_all(bind=global_engine)
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture(scope="function")
def db_connection(engine):
    conn = engine.connect()
    trans = conn.begin()
    try:
        yield conn
    finally:
        trans.rollback()
        conn.close()


@pytest.fixture(scope="function")
def db_session(db_connection):
    SessionLocal = sessionmaker(
        bind=db_connection,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    nested = db_connection.begin_nested()

    def restart_savepoint(sess, trans_):
        nonlocal nested
        if trans_.nested and not trans_.connection.closed:
            nested = db_connection.begin_nested()

    event.listen(session, "after_transaction_end", restart_savepoint)

    set_session_factory(SessionLocal)
    set_db_session_override(session)

    try:
        yield session
    finally:
        event.remove(session, "after_transaction_end", restart_savepoint)
        clear_db_session_override()
        reset_session_factory()
        session.close()


@pytest.fixture(scope="function")
def client():
    with app.test_client() as client:
        yield client


@pytest.fixture(autouse=True)
def _fresh_process_state(monkeypatch):
    registry.clear()
    monkeypatch.setitem(
        rate_limiter._limiters,
        "auth",
        rate_limiter.FixedWindowRateLimiter(
            settings.auth_rate_limit_max_attempts,
            settings.auth_rate_limit_window_seconds,
        ),
    )
    monkeypatch.setitem(
        rate_limiter._limiters,
        "ai",
        rate_limiter.FixedWindowRateLimiter(
            settings.ai_rate_limit_max_attempts,
            settings.ai_rate_limit_window_seconds,
        ),
    )
    yield
    registry.clear()


# ---------- factories ----------


def unique_email(prefix: str = "user") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}@example.com"


@pytest.fixture
def make_empresa(db_session):
    def _make(nome: str = "Empresa Teste", **fields) -> Empresas:
        empresa = Empresas(nome=nome, **fields)
        db_session.add(empresa)
        db_session.commit()
        return empresa

    return _make


@pytest.fixture
def make_perfil(db_session):
    def _make(
        *,
        empresa: Empresas | None = None,
        role: RolesEnum = RolesEnum.Usuario,
        nome: str = "Pessoa Teste",
        password: str = "secret123",
        **fields,
    ) -> Perfis:
        perfil = Perfis(
            email=unique_email(role.value),
            password_hash=hash_password(password),
            nome=nome,
            role=role.value,
            empresa_id=empresa.id if empresa else None,
            **fields,
        )
        db_session.add(perfil)
        db_session.commit()
        return perfil

    return _make


@pytest.fixture
def make_treinamento(db_session):
    def _make(empresa: Empresas | None, titulo: str = "Segurança da Informação", **fields):
        fields.setdefault("publicado", True)
        fields.setdefault("status", StatusTreinamento.Ativo.value)
        course = Treinamentos(
            titulo=titulo,
            empresa_id=empresa.id if empresa else None,
            **fields,
        )
        db_session.add(course)
        db_session.commit()
        return course

    return _make


@pytest.fixture
def login_as(client):
    """Attach session and CSRF cookies for ``perfil``; returns CSRF headers."""

    def _login(perfil: Perfis) -> dict:
        csrf = generate_csrf_token(perfil.id)
        client.set_cookie(settings.COOKIE_NAME, sign_session(perfil))
        client.set_cookie(settings.CSRF_COOKIE_NAME, csrf)
        return {"X-CSRF-Token": csrf}

    return _login
