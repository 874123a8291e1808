"""FastAPI endpoints under /api.

Endpoint groups: health, status panel, chat (submit, greet), transcript
(messages, history, import, export), settings. All of them act on the one
conversation owned by app.state.controller.
"""

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from john_chat import expressions
from john_chat.config import update_config
from john_chat.controller import ConversationBusy, ConversationController
from john_chat.models import ImportFailure, StatusRecord

router = APIRouter()


class ChatBody(BaseModel):
    message: str


class ImportBody(BaseModel):
    text: str


class EditBody(BaseModel):
    text: str


def _controller(request: Request) -> ConversationController:
    return request.app.state.controller


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


# ── Status panel ─────────────────────────────────────────


@router.get("/status")
async def get_status(request: Request):
    """Current status record plus the expression for its emotion."""
    record = _controller(request).status.snapshot()
    return {
        "status": record,
        "expression": expressions.describe(record.emotion),
    }


@router.put("/status")
async def replace_status(request: Request, body: StatusRecord):
    """Replace the whole status record; omitted fields take their defaults."""
    try:
        events = _controller(request).restore_status(body)
    except ConversationBusy as e:
        raise HTTPException(409, str(e))
    return {"events": events}


@router.delete("/status")
async def reset_status(request: Request):
    """Put the status record back to its defaults."""
    try:
        events = _controller(request).reset_status()
    except ConversationBusy as e:
        raise HTTPException(409, str(e))
    return {"events": events}


# ── Chat ─────────────────────────────────────────────────


@router.post("/chat")
async def chat(request: Request, body: ChatBody):
    """Send a user message (or a pasted transcript) and return emitted events."""
    try:
        events = await _controller(request).submit(body.message)
    except ConversationBusy as e:
        raise HTTPException(409, str(e))
    return {"events": events}


@router.post("/greet")
async def greet(request: Request):
    """Ask John to introduce himself (used on page load as a connection check)."""
    try:
        events = await _controller(request).greet()
    except ConversationBusy as e:
        raise HTTPException(409, str(e))
    return {"events": events}


# ── Transcript ───────────────────────────────────────────


@router.get("/messages")
async def get_messages(request: Request):
    """Rendered chat transcript, oldest first."""
    return _controller(request).transcript


@router.delete("/messages")
async def clear_messages(request: Request):
    """Clear the chat."""
    try:
        events = _controller(request).clear()
    except ConversationBusy as e:
        raise HTTPException(409, str(e))
    return {"events": events}


@router.patch("/messages/{index}")
async def edit_message(request: Request, index: int, body: EditBody):
    """Correct the text of one of John's messages (display only)."""
    try:
        events = _controller(request).edit_message(index, body.text)
    except ConversationBusy as e:
        raise HTTPException(409, str(e))
    except IndexError:
        raise HTTPException(404, "Message not found")
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {"events": events}


@router.get("/history")
async def get_history(request: Request):
    """Raw turns as a JSON array (re-importable)."""
    return _controller(request).history.snapshot()


@router.post("/import")
async def import_transcript(request: Request, body: ImportBody):
    """Replace the conversation with a pasted transcript."""
    controller = _controller(request)
    if not controller.codec.sniff(body.text):
        raise HTTPException(400, "Text is not a chat transcript")
    try:
        result = controller.import_transcript(body.text)
    except ConversationBusy as e:
        raise HTTPException(409, str(e))
    if isinstance(result, ImportFailure):
        raise HTTPException(400, result.reason)
    return {"turns": result, "messages": controller.transcript}


@router.get("/export", response_class=PlainTextResponse)
async def export_transcript(request: Request):
    """Labeled-line transcript for the clipboard."""
    return _controller(request).export_transcript()


# ── Settings ─────────────────────────────────────────────


@router.get("/settings")
async def get_settings(request: Request):
    """Current configuration."""
    return request.app.state.config


@router.patch("/settings")
async def update_settings(request: Request, body: dict):
    """Partially update configuration (in memory) and rewire the conversation."""
    try:
        config = update_config(request.app.state.config, body)
        _controller(request).apply_config(config)
    except ConversationBusy as e:
        raise HTTPException(409, str(e))
    except (ValueError, TypeError) as e:
        raise HTTPException(422, f"Invalid settings: {e}")
    request.app.state.config = config
    return config
