"""
Skládání kontextu pro DoorMate asistenta.

System prompt = základní prompt + kontext produktu + relevantní stránky
manuálu + úryvky z diskuze + zvýrazněný text. Za něj se přidá historie
konverzace a aktuální zpráva uživatele.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI
from sqlalchemy.orm import Session, joinedload
from starlette.concurrency import run_in_threadpool

from models import PRODUCT_MODELS, Comment, Product
from pdf_utils import EmbeddingError, PdfError, manual_excerpts

logger = logging.getLogger(__name__)

MAX_DISCUSSIONS = 10
MAX_DISCUSSION_CHARS = 500

BASE_SYSTEM_PROMPT = """You are DoorMate, an AI assistant specializing in industrial doors, gates, motors, and control systems.
Your primary role is to help door engineers and technicians with:
1. Installation guidance
2. Maintenance procedures
3. Troubleshooting issues
4. Technical specifications
5. Safety requirements and regulations

Key behaviors:
- Always provide practical, actionable advice
- Reference specific manual sections when possible
- Include safety warnings where relevant
- If you're unsure about any technical detail, say so rather than guessing
- Focus only on door/gate related queries, politely decline other topics
- Use technical language but explain complex terms
- Format responses with clear steps and bullet points for better readability

You have access to product manuals and specifications. When providing advice:
- Cite specific manual sections
- Reference relevant safety standards
- Include model-specific details when available
- Suggest when professional inspection might be needed"""


def parse_json_list(raw: Optional[str], field: str) -> List[Dict[str, Any]]:
    """Klient posílá manuály a diskuze jako JSON string se seznamem objektů."""
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except ValueError:
        raise ValueError(f"{field} must be a JSON encoded list")
    if not isinstance(data, list):
        raise ValueError(f"{field} must be a JSON encoded list")
    return [item for item in data if isinstance(item, dict)]


def load_product(db: Session, product_id: Optional[int], product_type: Optional[str]) -> Optional[Product]:
    if not product_id:
        return None
    model_cls = PRODUCT_MODELS.get(product_type or "product", Product)
    return db.query(model_cls).filter(model_cls.id == product_id).first()


def product_context(product: Product) -> str:
    brand = (product.brand or {}).get("name") or product.brand_id or "an unknown manufacturer"
    lines = [
        f"This conversation is about the {product.name} ({product.model}), "
        f"a {product.category} product manufactured by {brand}.",
        f"Key specifications: {json.dumps(product.specifications or [])}",
    ]
    if product.features:
        lines.append(f"Notable features: {', '.join(product.features)}")
    if product.applications:
        lines.append(f"Common applications: {', '.join(product.applications)}")

    safety = getattr(product, "safety_features", None)
    if safety:
        lines.append(f"Safety features: {', '.join(safety)}")
    if product.manuals:
        lines.append(f"Available manuals: {', '.join(m.get('title', '') for m in product.manuals)}")
    return "\n".join(lines)


def _discussion_line(username: str, text: str) -> str:
    text = " ".join((text or "").split())
    if len(text) > MAX_DISCUSSION_CHARS:
        text = text[:MAX_DISCUSSION_CHARS] + "..."
    return f"- {username}: {text}"


def discussions_from_payload(items: List[Dict[str, Any]]) -> List[str]:
    lines = []
    for item in items[:MAX_DISCUSSIONS]:
        text = item.get("text")
        if not text:
            continue
        user = item.get("user") if isinstance(item.get("user"), dict) else {}
        username = user.get("username") or item.get("username") or "user"
        lines.append(_discussion_line(username, text))
    return lines


def discussions_from_db(db: Session, product_id: int) -> List[str]:
    comments = (
        db.query(Comment)
        .options(joinedload(Comment.user))
        .filter(Comment.product_id == product_id, Comment.text != "")
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .limit(MAX_DISCUSSIONS)
        .all()
    )
    return [_discussion_line(c.user.username, c.text) for c in comments]


def _pick_manual_url(manual_url: Optional[str], manuals: List[Dict[str, Any]], product: Optional[Product]) -> Optional[str]:
    if manual_url:
        return manual_url
    for manual in manuals:
        if manual.get("url"):
            return manual["url"]
    if product is not None:
        for manual in product.manuals or []:
            if manual.get("url"):
                return manual["url"]
    return None


async def build_system_prompt(
    db: Session,
    client: AsyncOpenAI,
    message: str,
    product_id: Optional[int] = None,
    product_type: Optional[str] = None,
    manual_url: Optional[str] = None,
    manuals: Optional[List[Dict[str, Any]]] = None,
    discussions: Optional[List[Dict[str, Any]]] = None,
    highlighted_text: Optional[str] = None,
) -> str:
    """
    Seznamy manuals/discussions už musí být rozparsované (parse_json_list).
    Nepoužitelný manuál nebo chyba embeddingů prompt neshodí, jen se vynechá
    sekce s manuálem.
    """
    product = await run_in_threadpool(load_product, db, product_id, product_type)
    content = BASE_SYSTEM_PROMPT

    if product is not None:
        content += f"\n\nProduct Context:\n{product_context(product)}"

    url = _pick_manual_url(manual_url, manuals or [], product)
    if url:
        try:
            excerpts = await manual_excerpts(client, url, message)
        except (PdfError, EmbeddingError) as exc:
            logger.warning("Manual %s not usable: %s", url, exc)
            excerpts = ""
        if excerpts:
            content += f"\n\nRelevant Manual Content:\n{excerpts}"

    if discussions:
        lines = discussions_from_payload(discussions)
    elif product is not None:
        lines = await run_in_threadpool(discussions_from_db, db, product.id)
    else:
        lines = []
    if lines:
        content += "\n\nRelevant Discussions:\n" + "\n".join(lines)

    if highlighted_text:
        content += f'\n\nUser has highlighted this text from the manual:\n"{highlighted_text}"'

    return content


def build_messages(system_content: str, previous_messages: List[Dict[str, str]], message: str) -> List[Dict[str, str]]:
    messages = [{"role": "system", "content": system_content}]
    for msg in previous_messages:
        role = "user" if msg.get("sender") == "user" else "assistant"
        messages.append({"role": role, "content": msg.get("text", "")})
    messages.append({"role": "user", "content": message})
    return messages
