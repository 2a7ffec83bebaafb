"""
Čtení manuálů (PDF) pro asistenta.

Text stránek se tahá přes PyMuPDF (fitz). Stránky i dotaz se převedou na
embeddingy (OpenAI) a do promptu jdou stránky nejbližší dotazu podle
kosinové podobnosti. Text i vektory stránek se cacheují podle cesty a mtime
souboru, takže se manuál embeduje jen jednou.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import fitz
import numpy as np
from openai import AsyncOpenAI, OpenAIError
from starlette.concurrency import run_in_threadpool

import config

logger = logging.getLogger(__name__)

MAX_PAGE_CHARS = 3000
# text-embedding-3-* berou max 8191 tokenů na vstup
MAX_EMBED_CHARS = 8000
EMBED_BATCH_SIZE = 64
MAX_CACHED_MANUALS = 32


class PdfError(Exception):
    pass


class EmbeddingError(Exception):
    pass


# (cesta, mtime, model) -> L2-normalizované vektory neprázdných stránek
_page_vectors: Dict[Tuple[str, float, str], np.ndarray] = {}


def manual_path(manual_url: str) -> Path:
    """URL manuálu (i absolutní) -> soubor v adresáři manuálů podle názvu souboru."""
    filename = os.path.basename(manual_url.split("?", 1)[0])
    if not filename:
        raise PdfError(f"Invalid manual URL: {manual_url}")
    return config.MANUALS_DIR / filename


@lru_cache(maxsize=32)
def _read_pages(path: str, mtime: float) -> Tuple[str, ...]:
    try:
        with fitz.open(path) as doc:
            return tuple(page.get_text("text").strip() for page in doc)
    except RuntimeError as exc:
        raise PdfError(f"Failed to parse PDF: {exc}") from exc


def extract_pages(path: Path) -> List[Dict]:
    path = Path(path)
    if not path.is_file():
        raise PdfError(f"File access error: {path} not found")

    texts = _read_pages(str(path.resolve()), path.stat().st_mtime)
    empty = sum(1 for t in texts if not t)
    if empty:
        logger.debug("%s: %d of %d pages without text", path.name, empty, len(texts))
    return [{"page_number": i + 1, "text": text} for i, text in enumerate(texts)]


def _normalize(vectors: List[List[float]]) -> np.ndarray:
    arr = np.array(vectors, dtype=np.float32)
    norms = np.linalg.norm(arr, axis=1, keepdims=True)
    norms[norms == 0.0] = 1.0
    return arr / norms


async def embed_texts(client: AsyncOpenAI, texts: List[str]) -> np.ndarray:
    """Embeddingy textů po dávkách; výsledek má tvar (len(texts), dimenze)."""
    vectors: List[List[float]] = []
    for start in range(0, len(texts), EMBED_BATCH_SIZE):
        batch = [t.replace("\n", " ")[:MAX_EMBED_CHARS] for t in texts[start:start + EMBED_BATCH_SIZE]]
        try:
            response = await client.embeddings.create(
                input=batch,
                model=config.OPENAI_EMBEDDING_MODEL,
                dimensions=config.OPENAI_EMBEDDING_DIMENSIONS,
            )
        except OpenAIError as exc:
            raise EmbeddingError(f"Failed to generate embeddings: {exc}") from exc
        vectors += [item.embedding for item in sorted(response.data, key=lambda d: d.index)]
    return _normalize(vectors)


async def _page_matrix(client: AsyncOpenAI, path: Path, pages: List[Dict]) -> np.ndarray:
    key = (str(path.resolve()), path.stat().st_mtime, config.OPENAI_EMBEDDING_MODEL)
    matrix = _page_vectors.get(key)
    if matrix is None:
        matrix = await embed_texts(client, [p["text"] for p in pages])
        if len(_page_vectors) >= MAX_CACHED_MANUALS:
            _page_vectors.pop(next(iter(_page_vectors)))
        _page_vectors[key] = matrix
        logger.info("Embedded %d pages of %s", len(pages), path.name)
    return matrix


def rank_pages(pages: List[Dict], page_vectors: np.ndarray, query_vector: np.ndarray, limit: int = 3) -> List[Dict]:
    """Stránky nejbližší dotazu (obě strany normalizované), vrácené podle čísla stránky."""
    scores = page_vectors @ query_vector
    top = np.argsort(-scores, kind="stable")[:limit]
    return sorted((pages[i] for i in top), key=lambda p: p["page_number"])


def format_excerpts(pages: List[Dict]) -> str:
    parts = []
    for page in pages:
        text = page["text"]
        if len(text) > MAX_PAGE_CHARS:
            text = text[:MAX_PAGE_CHARS] + "..."
        n = page["page_number"]
        parts.append(f"[Pages {n}-{n}]: {text}")
    return "\n\n".join(parts)


async def manual_excerpts(client: AsyncOpenAI, manual_url: Optional[str], query: str, limit: int = 3) -> str:
    if not manual_url:
        return ""
    path = manual_path(manual_url)
    pages = [p for p in await run_in_threadpool(extract_pages, path) if p["text"]]
    if not pages:
        return ""
    if len(pages) <= limit:
        # krátký manuál jde do promptu celý, embedovat není co vybírat
        return format_excerpts(pages)

    page_vectors = await _page_matrix(client, path, pages)
    query_vector = (await embed_texts(client, [query]))[0]
    return format_excerpts(rank_pages(pages, page_vectors, query_vector, limit))
