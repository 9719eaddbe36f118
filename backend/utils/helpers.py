# backend/utils/helpers.py

import random
import re
import time
import unicodedata


def clean_json_string(text: str) -> str:
    """
    Limpa a resposta textual da IA antes do json.loads:
      - remove cercas de código (```json ... ```)
      - recorta do primeiro '{' ao último '}' (tolera prosa em volta)
    Texto vazio vira "{}".
    """
    if not text:
        return "{}"

    cleaned = text.strip()
    cleaned = re.sub(r"^```json\s*", "", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(r"^```\s*", "", cleaned)
    cleaned = re.sub(r"\s*```$", "", cleaned)

    first_brace = cleaned.find("{")
    last_brace = cleaned.rfind("}")
    if first_brace != -1 and last_brace != -1:
        cleaned = cleaned[first_brace:last_brace + 1]

    return cleaned


def strip_data_uri(encoded: str) -> str:
    """Remove o prefixo 'data:<mime>;base64,' de um payload base64."""
    return re.sub(r"^data:.+;base64,", "", encoded)


def sanitize_file_name(name: str) -> str:
    """
    Nome seguro para o Storage: sem acentos, apenas [a-z0-9.-],
    demais caracteres viram '_'.
    """
    normalized = unicodedata.normalize("NFD", name)
    without_accents = "".join(ch for ch in normalized if not unicodedata.combining(ch))
    return re.sub(r"[^a-zA-Z0-9.-]", "_", without_accents).lower()


def storage_object_name(file_name: str) -> str:
    """Caminho único no bucket: '<epoch_ms>_<nome_sanitizado>'."""
    return f"{int(time.time() * 1000)}_{sanitize_file_name(file_name)}"


def generate_short_code() -> str:
    """Código de 5 dígitos usado no link público curto da vaga."""
    return str(random.randint(10000, 99999))


def format_elapsed(seconds: float) -> str:
    """Formata a duração do lote: '1min e 5seg' ou '42seg'."""
    total = int(seconds)
    minutes, secs = divmod(total, 60)
    if minutes > 0:
        return f"{minutes}min e {secs}seg"
    return f"{secs}seg"
