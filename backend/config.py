import os
import json
from typing import List, Optional, Union
from dotenv import load_dotenv
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

# Carrega o arquivo .env da raiz do projeto
load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), "..", ".env"))

# Planos com limite >= este valor são tratados como ilimitados
UNLIMITED = 9999


class Settings(BaseSettings):
    SUPABASE_URL: str = Field(..., description="URL do projeto Supabase")

    # Chave pública (para autenticação de usuários)
    SUPABASE_ANON_KEY: str = Field(
        ...,
        description="Chave pública do Supabase (anon key)"
    )

    # Chave de serviço (Storage e operações backend)
    SUPABASE_SERVICE_KEY: str = Field(
        ...,
        description="Chave privada do Supabase (service_role) - NUNCA exponha!"
    )

    SUPABASE_JWT_SECRET: str = Field(
        default="",
        description="Segredo JWT do Supabase (tokens HS256/HS512)"
    )

    SUPABASE_DB_URL: str = Field(..., description="Connection string PostgreSQL")

    RESUMES_BUCKET: str = Field(default="resumes", description="Bucket dos currículos")
    MARKETING_BUCKET: str = Field(default="marketing", description="Bucket das imagens de anúncios")

    # ========== IA ==========
    OPENAI_API_KEY: str = Field(
        ...,
        description="Chave de API do provedor de IA (sk-...)"
    )
    OPENAI_BASE_URL: Optional[str] = Field(
        default=None,
        description="Endpoint compatível com OpenAI (opcional)"
    )
    OPENAI_MODEL: str = Field(
        default="gpt-4o-mini",
        description="Modelo principal da cadeia de fallback"
    )
    AI_FALLBACK_MODELS: str = Field(
        default="gpt-4o",
        description="Modelos tentados em ordem depois do principal (lista JSON ou separada por vírgula)"
    )
    AI_TEMPERATURE: float = Field(default=0.2, description="Temperatura da decodificação")
    AI_TOP_K: Optional[int] = Field(
        default=None,
        description="top_k enviado ao provedor (apenas provedores que aceitam)"
    )
    AI_TIMEOUT_SECONDS: float = Field(default=120.0, description="Timeout por chamada de IA")
    AI_RATE_LIMIT_BACKOFF_SECONDS: float = Field(
        default=1.5,
        description="Espera antes de trocar de modelo após HTTP 429"
    )

    # ========== ANÁLISE EM LOTE ==========
    ANALYSIS_MAX_CONCURRENCY: int = Field(
        default=20,
        ge=1,
        description="Máximo de currículos analisados simultaneamente"
    )
    STORAGE_TIMEOUT_SECONDS: float = Field(default=60.0, description="Timeout do download no Storage")

    # ========== REDIS (Filas Assíncronas) ==========
    REDIS_URL: str = Field(
        default="redis://localhost:6379",
        description="URL de conexão do Redis para RQ worker"
    )

    # ========== APP ==========
    APP_ENV: str = Field(
        default="development",
        description="Ambiente de execução (development/production/staging)"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Nível de log da aplicação (DEBUG/INFO/WARNING/ERROR/CRITICAL)"
    )

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore",
        "env_file_encoding": "utf-8"
    }

    @field_validator("AI_FALLBACK_MODELS", mode="before")
    @classmethod
    def parse_fallback_models(cls, v: Union[List[str], str]) -> str:
        """Normaliza lista JSON ou texto separado por vírgula para 'a,b,c'."""
        if isinstance(v, str):
            try:
                v = json.loads(v)
            except json.JSONDecodeError:
                return v
        if isinstance(v, list):
            return ",".join(str(m) for m in v)
        return str(v)

    @property
    def ai_models(self) -> List[str]:
        """Cadeia de fallback ordenada, sem repetições."""
        fallbacks = [m.strip() for m in self.AI_FALLBACK_MODELS.split(",") if m.strip()]
        return list(dict.fromkeys([self.OPENAI_MODEL, *fallbacks]))


def _report_invalid_settings(error: ValidationError) -> None:
    """Imprime no console as variáveis ausentes ou inválidas do .env."""
    missing = [str(item["loc"][0]) for item in error.errors() if item["type"] == "missing"]
    invalid = [
        f"{item['loc'][0]} ({item['msg']})"
        for item in error.errors()
        if item["type"] != "missing"
    ]

    lines = ["", "=" * 60, "❌ ERRO: .env inválido para a triagem de currículos", "=" * 60]
    if missing:
        lines.append("\n🔴 Faltando (obrigatórias):")
        lines.extend(f"   - {name}" for name in missing)
    if invalid:
        lines.append("\n🟡 Valores recusados:")
        lines.extend(f"   - {name}" for name in invalid)
    lines.extend(["\n⚠️  Ajuste o .env e suba a API/worker novamente.", "=" * 60, ""])
    print("\n".join(lines))


def load_settings() -> Settings:
    """
    Lê o .env e valida as configurações.

    Raises:
        SystemExit: variáveis obrigatórias ausentes ou inválidas
    """
    try:
        return Settings()
    except ValidationError as e:
        _report_invalid_settings(e)
        raise SystemExit(1)


# ========================================
# 🌐 INSTÂNCIA SINGLETON
# ========================================

settings = load_settings()


def print_settings_summary() -> None:
    """Exibe um resumo das configurações sem expor as chaves completas."""
    print("\n" + "="*60)
    print("✅ Configurações carregadas com sucesso!")
    print("="*60)

    print(f"\n📋 Ambiente: {settings.APP_ENV}")
    print(f"📊 Log Level: {settings.LOG_LEVEL}")
    print(f"🤖 Modelos IA: {' → '.join(settings.ai_models)}")
    print(f"⚡ Concorrência da análise: {settings.ANALYSIS_MAX_CONCURRENCY}")

    print(f"\n🔐 Supabase URL: {settings.SUPABASE_URL}")
    print(f"🔑 Supabase Anon Key: {settings.SUPABASE_ANON_KEY[:20]}...{settings.SUPABASE_ANON_KEY[-10:]}")
    print(f"🔑 OpenAI Key: {settings.OPENAI_API_KEY[:10]}...{settings.OPENAI_API_KEY[-5:]}")

    # Extrai host do banco de dados sem expor senha
    db_parts = settings.SUPABASE_DB_URL.split('@')
    if len(db_parts) > 1:
        print(f"🗄️  Database: {db_parts[-1]}")
    else:
        print("🗄️  Database: [configurado]")

    try:
        from redis import Redis
        redis_conn = Redis.from_url(settings.REDIS_URL, socket_connect_timeout=2)
        redis_conn.ping()
        print(f"📦 Redis: Conectado ({settings.REDIS_URL})")
    except Exception as e:
        print(f"📦 Redis: ⚠️  Não conectado ({settings.REDIS_URL}) - {str(e)[:50]}")

    print("="*60 + "\n")
