from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from backend.config import settings

engine = create_engine(settings.SUPABASE_DB_URL, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """Cria e fecha sessão SQLAlchemy automaticamente."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


if __name__ == "__main__":
    try:
        conn = engine.connect()
        print("✅ Conexão com o banco estabelecida com sucesso!")
        conn.close()
    except Exception as e:
        print(f"❌ Erro ao conectar no banco: {e}")
