import time
import logging
from typing import Optional

import requests
from fastapi import HTTPException, Request
from jose import jwk, jwt

from backend.config import settings

logger = logging.getLogger(__name__)

ASYMMETRIC_PREFIXES = ("RS", "ES", "Ed", "PS")
SYMMETRIC_ALGS = ["HS256", "HS512"]
JWKS_TTL_SECONDS = 300

# Cache do JWKS (tokens assimétricos)
_jwks_cache = {"data": None, "expires_at": 0.0}


def _get_jwks() -> Optional[dict]:
    """Busca o JWKS do Supabase Auth, com cache de 5 minutos."""
    now = time.time()
    if _jwks_cache["data"] and now < _jwks_cache["expires_at"]:
        return _jwks_cache["data"]

    base = settings.SUPABASE_URL.rstrip("/")
    for url in (f"{base}/auth/v1/.well-known/jwks.json", f"{base}/.well-known/jwks.json"):
        try:
            response = requests.get(url, timeout=10, headers={"Accept": "application/json"})
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.warning(f"⚠️ Erro ao buscar JWKS em {url}: {e}")
            continue
        _jwks_cache.update(data=data, expires_at=now + JWKS_TTL_SECONDS)
        logger.info(f"🔑 JWKS obtido de {url}")
        return data

    logger.error("❌ Falha ao obter JWKS. Verifique SUPABASE_URL e a rede.")
    return None


def _decode_asymmetric(token: str, alg: str, kid: Optional[str]) -> dict:
    jwks = _get_jwks()
    if not jwks:
        raise HTTPException(401, detail="Unable to fetch JWKS")
    if not kid:
        raise HTTPException(401, detail="JWT missing 'kid' header")

    key_dict = next((k for k in jwks.get("keys", []) if k.get("kid") == kid), None)
    if not key_dict:
        logger.error(f"❌ Chave pública não encontrada para kid={kid}")
        raise HTTPException(401, detail="Public key not found for token")

    key_alg = key_dict.get("alg") or alg
    try:
        public_key = jwk.construct(key_dict).to_pem().decode("utf-8")
        return jwt.decode(token, public_key, algorithms=[key_alg], options={"verify_aud": False})
    except jwt.ExpiredSignatureError:
        raise HTTPException(401, detail="Token expired")
    except Exception as e:
        logger.error(f"❌ Falha ao validar token {key_alg}: {e}")
        raise HTTPException(401, detail="Invalid token")


def _decode_symmetric(token: str, alg: str) -> dict:
    if not settings.SUPABASE_JWT_SECRET:
        logger.error("❌ SUPABASE_JWT_SECRET não configurado para tokens HS*")
        raise HTTPException(401, detail="Invalid token")

    algorithms = list(dict.fromkeys([alg, *SYMMETRIC_ALGS]))
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=algorithms,
            options={"verify_aud": False},
        )
    except jwt.ExpiredSignatureError:
        logger.warning("⚠️ Token expirado")
        raise HTTPException(401, detail="Token expired")
    except Exception as e:
        logger.error(f"❌ Falha ao validar token HS*: {e}")
        raise HTTPException(401, detail="Invalid token")


def decode_token(token: str) -> dict:
    """Valida o JWT do Supabase (HS* pelo segredo, RS*/ES*/Ed*/PS* pelo JWKS)."""
    try:
        header = jwt.get_unverified_header(token)
    except Exception as e:
        logger.error(f"❌ Header JWT inválido: {e}")
        raise HTTPException(401, detail="Invalid token header")

    alg = header.get("alg")
    if not alg:
        raise HTTPException(401, detail="Token missing 'alg' header")
    if alg.startswith(ASYMMETRIC_PREFIXES):
        return _decode_asymmetric(token, alg, header.get("kid"))
    if alg.startswith("HS"):
        return _decode_symmetric(token, alg)

    logger.warning(f"Algoritmo JWT não suportado: {alg}")
    raise HTTPException(401, detail=f"Unsupported JWT alg: {alg}")


def get_current_user_claims(request: Request) -> dict:
    """Dependência FastAPI: claims do Bearer token."""
    auth_header = request.headers.get("Authorization", "") or ""
    if not auth_header.startswith("Bearer "):
        raise HTTPException(401, detail="Missing Bearer token")

    token = auth_header.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(401, detail="Empty Bearer token")

    return decode_token(token)
