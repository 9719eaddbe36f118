import uuid

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from backend.database.connection import Base


def _uuid() -> str:
    return str(uuid.uuid4())


# ======================================================
# 👤 Tabela Profile (recrutador, plano e limites)
# ======================================================
class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String, primary_key=True)  # mesmo id do Supabase Auth
    email = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    role = Column(String, nullable=False, default="USER")        # USER / ADMIN
    status = Column(String, nullable=False, default="ACTIVE")    # ACTIVE / BLOCKED
    plan = Column(String, nullable=False, default="FREE")
    job_limit = Column(Integer, nullable=False, default=3)
    resume_limit = Column(Integer, nullable=False, default=25)
    resume_usage = Column(Integer, nullable=False, default=0)
    subscription_status = Column(String, nullable=True)
    salesperson = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)

    jobs = relationship("Job", back_populates="owner", cascade="all, delete-orphan")


# ======================================================
# 💼 Tabela Job (vagas)
# ======================================================
class Job(Base):
    __tablename__ = "jobs"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    criteria = Column(Text, nullable=True)
    short_code = Column(String, nullable=True, unique=True)
    is_pinned = Column(Boolean, nullable=False, default=False)
    auto_analyze = Column(Boolean, nullable=False, default=False)
    is_paused = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    owner = relationship("Profile", back_populates="jobs")
    candidates = relationship("Candidate", back_populates="job", cascade="all, delete-orphan")


# ======================================================
# 📄 Tabela Candidate (currículos enviados para a vaga)
# ======================================================
class Candidate(Base):
    __tablename__ = "candidates"

    id = Column(String, primary_key=True, default=_uuid)
    job_id = Column(String, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False)
    filename = Column(String, nullable=False)
    file_path = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="PENDING")
    analysis_result = Column(JSON, nullable=True)
    match_score = Column(Float, nullable=True)
    is_selected = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    job = relationship("Job", back_populates="candidates")


# ======================================================
# 📣 Tabela Announcement (anúncios do painel)
# ======================================================
class Announcement(Base):
    __tablename__ = "announcements"

    id = Column(String, primary_key=True, default=_uuid)
    title = Column(String, nullable=False)
    image_path = Column(Text, nullable=False)
    link_url = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    target_plans = Column(JSON, default=lambda: ["FREE", "MENSAL", "ANUAL"])
    created_at = Column(DateTime(timezone=True), server_default=func.now())
