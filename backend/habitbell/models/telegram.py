from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


class TelegramChat(Base):
    """A chat that receives fired reminders and can answer them with buttons."""

    __tablename__ = "telegram_chats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    chat_id: Mapped[int] = mapped_column(Integer, unique=True, index=True)
    chat_type: Mapped[str] = mapped_column(String(32), default="private")
    username: Mapped[str | None] = mapped_column(String(128), nullable=True)
    title: Mapped[str | None] = mapped_column(String(256), nullable=True)

    # disabled chats are skipped by the dispatcher
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)

    first_seen_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    last_seen_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    last_notified_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
