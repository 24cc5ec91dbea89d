from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..core.database import get_db
from ..models import TelegramChat

router = APIRouter(prefix="/integrations/telegram", tags=["telegram"])


class TelegramRegisterRequest(BaseModel):
    chat_id: int
    chat_type: str | None = "private"
    username: str | None = None
    title: str | None = None


class TelegramChatOut(BaseModel):
    chat_id: int
    chat_type: str
    username: str | None
    title: str | None
    enabled: bool
    last_seen_at: datetime
    last_notified_at: datetime | None

    class Config:
        from_attributes = True


class TelegramRegisterResponse(BaseModel):
    ok: bool
    chat_id: int
    enabled: bool


class TelegramEnabledRequest(BaseModel):
    enabled: bool


@router.post("/register", response_model=TelegramRegisterResponse)
def register_chat(payload: TelegramRegisterRequest, db: Session = Depends(get_db)):
    chat = db.query(TelegramChat).filter(TelegramChat.chat_id == payload.chat_id).first()
    now = datetime.utcnow()

    if chat is None:
        chat = TelegramChat(
            chat_id=payload.chat_id,
            chat_type=payload.chat_type or "private",
            enabled=True,
            first_seen_at=now,
        )
        db.add(chat)
    else:
        chat.chat_type = payload.chat_type or chat.chat_type

    # re-registering refreshes the profile but keeps the enabled flag
    chat.username = payload.username
    chat.title = payload.title
    chat.last_seen_at = now

    db.commit()
    db.refresh(chat)
    return TelegramRegisterResponse(ok=True, chat_id=chat.chat_id, enabled=chat.enabled)


@router.get("/chats", response_model=list[TelegramChatOut])
def list_chats(db: Session = Depends(get_db)):
    return db.query(TelegramChat).order_by(TelegramChat.first_seen_at).all()


@router.post("/chats/{chat_id}/enabled", response_model=TelegramChatOut)
def set_chat_enabled(chat_id: int, payload: TelegramEnabledRequest, db: Session = Depends(get_db)):
    chat = db.query(TelegramChat).filter(TelegramChat.chat_id == chat_id).first()
    if not chat:
        raise HTTPException(status_code=404, detail="Chat not registered")

    chat.enabled = payload.enabled
    db.commit()
    db.refresh(chat)
    return chat
