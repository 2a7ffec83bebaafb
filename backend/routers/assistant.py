import json
import logging
from typing import AsyncIterator, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse
from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

import config
from assistant_context import build_messages, build_system_prompt, parse_json_list
from database import get_db

logger = logging.getLogger(__name__)

assistant_router = APIRouter(prefix="/api/assistant", tags=["assistant"])

CHAT_TEMPERATURE = 0.7
CHAT_MAX_TOKENS = 1000

# klient posílá typ ve tvaru z frontendu
_PRODUCT_TYPE_ALIASES = {"controlSystem": "control_system"}


class ChatMessage(BaseModel):
    sender: Literal["user", "assistant"]
    text: str


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    product_id: Optional[int] = None
    product_type: Optional[Literal["door", "gate", "motor", "controlSystem", "control_system"]] = None
    manual_url: Optional[str] = None
    manuals: Optional[str] = None
    discussions: Optional[str] = None
    highlighted_text: Optional[str] = None
    previous_messages: List[ChatMessage] = []


_async_openai_client: Optional[AsyncOpenAI] = None


def _get_async_openai_client() -> AsyncOpenAI:
    global _async_openai_client
    if _async_openai_client is None:
        _async_openai_client = AsyncOpenAI(api_key=config.OPENAI_API_KEY)
    return _async_openai_client


def _sse(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


async def _relay(stream) -> AsyncIterator[str]:
    try:
        async for chunk in stream:
            if not chunk.choices:
                continue
            content = chunk.choices[0].delta.content
            if content:
                yield _sse({"content": content})
    except OpenAIError as exc:
        logger.error("Assistant stream interrupted: %s", exc)
        yield _sse({"error": str(exc)})


@assistant_router.get("/test")
async def test_connection():
    try:
        client = _get_async_openai_client()
        completion = await client.chat.completions.create(
            model=config.OPENAI_TEST_MODEL,
            messages=[{"role": "user", "content": "Say 'OpenAI connection successful!'"}],
            stream=False,
        )
    except OpenAIError as exc:
        logger.error("OpenAI test failed: %s", exc)
        return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})

    return {"success": True, "message": completion.choices[0].message.content}


@assistant_router.post("/chat")
async def chat(data: ChatRequest, db: Session = Depends(get_db)):
    product_type = _PRODUCT_TYPE_ALIASES.get(data.product_type, data.product_type)

    try:
        manuals = parse_json_list(data.manuals, "manuals")
        discussions = parse_json_list(data.discussions, "discussions")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    try:
        client = _get_async_openai_client()
        system_content = await build_system_prompt(
            db,
            client,
            data.message,
            product_id=data.product_id,
            product_type=product_type,
            manual_url=data.manual_url,
            manuals=manuals,
            discussions=discussions,
            highlighted_text=data.highlighted_text,
        )
        messages = build_messages(
            system_content,
            [m.model_dump() for m in data.previous_messages],
            data.message,
        )
        stream = await client.chat.completions.create(
            model=config.OPENAI_MODEL,
            messages=messages,
            stream=True,
            temperature=CHAT_TEMPERATURE,
            max_tokens=CHAT_MAX_TOKENS,
        )
    except OpenAIError as exc:
        logger.error("Assistant request failed: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"message": "Error processing request", "details": str(exc)},
        )

    return StreamingResponse(
        _relay(stream),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
