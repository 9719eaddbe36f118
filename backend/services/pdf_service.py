import io

import fitz


def pdf_page_count(b: bytes) -> int:
    """Número de páginas; levanta exceção se os bytes não forem um PDF."""
    with fitz.open(stream=io.BytesIO(b), filetype="pdf") as pdf:
        return pdf.page_count


def is_valid_pdf(b: bytes) -> bool:
    """PDF legível com pelo menos uma página."""
    if not b or not b.startswith(b"%PDF"):
        return False
    try:
        return pdf_page_count(b) > 0
    except Exception:
        return False


def has_selectable_text(b: bytes) -> bool:
    """Se o PDF tem texto extraível (currículos escaneados não têm)."""
    with fitz.open(stream=io.BytesIO(b), filetype="pdf") as pdf:
        return any(p.get_text().strip() for p in pdf)
