"""
Configuração do pytest e fixtures compartilhadas.

- Variáveis de ambiente mínimas (antes de importar backend.config)
- Banco SQLite em memória, recriado a cada teste
- TestClient com banco, autenticação e Storage substituídos
"""

import os

os.environ.setdefault("SUPABASE_URL", "https://projeto-teste.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "anon-key-de-teste-0123456789")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "service-key-de-teste-0123456789")
os.environ.setdefault("SUPABASE_JWT_SECRET", "segredo-de-teste")
os.environ.setdefault("SUPABASE_DB_URL", "sqlite://")
os.environ.setdefault("OPENAI_API_KEY", "sk-teste-0123456789")
os.environ.setdefault("APP_ENV", "test")

import fitz
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from backend.database.connection import Base, get_db
from backend.database.models import Job, Profile
from backend.main import app
from backend.routes import analysis as analysis_routes
from backend.services.runner import get_marketing_storage, get_resumes_storage
from backend.utils.auth import get_current_user_claims
from tests.fakes import FakeStorage

# SQLite em memória compartilhado entre sessões (StaticPool)
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(db_session):
    """Fábrica de sessões no mesmo banco em memória (para os stores assíncronos)."""
    return TestingSessionLocal


@pytest.fixture
def user(db_session):
    profile = Profile(id="user-1", email="recrutadora@empresa.com", name="Ana", plan="FREE", job_limit=3, resume_limit=25)
    db_session.add(profile)
    db_session.commit()
    return profile


@pytest.fixture
def admin(db_session):
    profile = Profile(id="admin-1", email="admin@empresa.com", role="ADMIN", plan="ANUAL", job_limit=9999, resume_limit=9999)
    db_session.add(profile)
    db_session.commit()
    return profile


@pytest.fixture
def job(db_session, user):
    job = Job(user_id=user.id, title="Analista Financeiro", criteria="Excel avançado", short_code="12345")
    db_session.add(job)
    db_session.commit()
    return job


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def client(db_session, storage):
    """TestClient autenticado como user-1, com banco e Storage de teste."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user_claims] = lambda: {"sub": "user-1"}
    app.dependency_overrides[get_resumes_storage] = lambda: storage
    app.dependency_overrides[get_marketing_storage] = lambda: storage

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    analysis_routes._batches.clear()
    analysis_routes._starting.clear()


@pytest.fixture
def login_as():
    """Troca o usuário autenticado do TestClient."""

    def _login(user_id: str):
        app.dependency_overrides[get_current_user_claims] = lambda: {"sub": user_id}

    return _login


@pytest.fixture
def pdf_bytes():
    """PDF real de uma página com texto selecionável."""
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Maria Souza - Analista Financeiro")
    data = doc.tobytes()
    doc.close()
    return data
