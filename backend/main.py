from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.config import print_settings_summary, settings
from backend.utils.logger import setup_logger

# Configuração de logs do pacote backend
setup_logger("backend", level=settings.LOG_LEVEL)

# Importa rotas
from backend.routes import admin, analysis, auth, candidates, jobs, public, users, webhooks


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Resumo das configurações na subida (fora dos testes)
    if settings.APP_ENV != "test":
        print_settings_summary()
    yield


# Inicializa app FastAPI
app = FastAPI(
    title="Triagem de Currículos API",
    version="1.0",
    description="API para triagem de currículos em lote com IA",
    lifespan=lifespan,
)

# Middleware de CORS (necessário para Streamlit e para a página pública de envio)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Registra as rotas
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(jobs.router)
app.include_router(candidates.router)
app.include_router(analysis.router)
app.include_router(public.router)
app.include_router(admin.router)
app.include_router(webhooks.router)


# Healthcheck
@app.get("/")
def healthcheck():
    return {"status": "ok", "message": "API rodando!"}
