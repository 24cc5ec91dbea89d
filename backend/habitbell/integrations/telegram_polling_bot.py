"""
Telegram front end for HabitBell, talking to the Bot API over httpx.

One long-polling loop does three things: answers chat commands, turns
button presses into `/notifications/actions` calls, and drains the
notification outbox, posting each fired reminder with Done / Snooze
buttons. Run with `python -m habitbell.integrations.telegram_polling_bot`.
"""

from __future__ import annotations

import asyncio
import logging
from textwrap import dedent
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..config import settings

logger = logging.getLogger(__name__)

API_BASE = settings.api_base_url or "http://localhost:8000"

NOTIFICATION_POLL_INTERVAL = 5.0
NOTIFICATION_FETCH_LIMIT = 20
NOTIFICATION_CONSUMER_ID = "telegram-polling-bot"
TELEGRAM_POLL_TIMEOUT = 25  # seconds

CALLBACK_SEPARATOR = "|"
BUTTONS_PER_ROW = 3


def callback_data(action_id: str, reminder_id: str) -> str:
    return f"{action_id}{CALLBACK_SEPARATOR}{reminder_id}"


def parse_callback_data(data: str) -> Optional[Tuple[str, str]]:
    """"snooze_10|rem_1" -> ("snooze_10", "rem_1"); None when malformed."""

    action, sep, reminder_id = data.partition(CALLBACK_SEPARATOR)
    if not sep or not action or not reminder_id:
        return None
    return action, reminder_id


def build_inline_keyboard(actions: List[Dict[str, str]], reminder_id: str) -> List[List[Dict[str, str]]]:
    buttons = [
        {"text": a["title"], "callback_data": callback_data(a["id"], reminder_id)}
        for a in actions
    ]
    return [buttons[i:i + BUTTONS_PER_ROW] for i in range(0, len(buttons), BUTTONS_PER_ROW)]


def format_today_message(data: Dict[str, Any]) -> str:
    lines: list[str] = [f"📅 {data['date']}"]
    lines.append(
        f"✅ {data['completions_today']} completions today, "
        f"{len(data.get('done_reminder_ids') or [])}/{data['reminders_enabled']} reminders done"
    )

    best = data.get("best_streak")
    if best:
        lines.append(f"🔥 Best streak: {best['title']} ({best['current_streak']} days)")

    nxt = data.get("next_notification")
    if nxt:
        lines.append(f"⏰ Next alert at {nxt['fire_at']} UTC")
    else:
        lines.append("⏰ Nothing scheduled.")

    return "\n".join(lines)


def format_reminders_message(reminders: list[Dict[str, Any]]) -> str:
    if not reminders:
        return "No reminders configured yet."

    lines = ["📋 Your reminders:"]
    for r in reminders:
        state = "✅" if r["enabled"] else "⏸️"
        lines.append(f"- {state} {r['title']}: {r['schedule_label']}")
    return "\n".join(lines)


def _build_telegram_base_url() -> str:
    token = settings.telegram_bot_token
    if not token:
        raise RuntimeError("TELEGRAM_BOT_TOKEN not set in .env")
    return f"https://api.telegram.org/bot{token}"


# ---------- Backend calls ----------


async def register_chat_with_backend(client: httpx.AsyncClient, chat: dict) -> None:
    payload = {
        "chat_id": chat["id"],
        "chat_type": chat.get("type", "private"),
        "username": chat.get("username"),
        "title": chat.get("title"),
    }
    resp = await client.post(f"{API_BASE}/integrations/telegram/register", json=payload)
    resp.raise_for_status()


async def call_backend(client: httpx.AsyncClient, path: str) -> Any:
    resp = await client.get(f"{API_BASE}{path}")
    resp.raise_for_status()
    return resp.json()


async def post_reminder_action(client: httpx.AsyncClient, action: str, reminder_id: str) -> Dict[str, Any]:
    resp = await client.post(
        f"{API_BASE}/notifications/actions",
        json={"action": action, "reminder_id": reminder_id},
    )
    resp.raise_for_status()
    return resp.json()


async def fetch_pending_notifications(client: httpx.AsyncClient) -> list[dict]:
    params = {
        "limit": NOTIFICATION_FETCH_LIMIT,
        "consumer_id": NOTIFICATION_CONSUMER_ID,
        "lock_seconds": 60,
    }
    resp = await client.get(f"{API_BASE}/notifications/pending", params=params)
    if resp.status_code >= 400:
        logger.warning(
            "fetch notifications HTTP %s path=%s body=%s",
            resp.status_code, resp.request.url.path, resp.text[:500],
        )
        resp.raise_for_status()
    return resp.json()


async def ack_notification(client: httpx.AsyncClient, event_id: int) -> None:
    try:
        await client.post(f"{API_BASE}/notifications/{event_id}/ack")
    except httpx.HTTPError:
        logger.exception("failed to ack notification %s", event_id)


async def fail_notification(client: httpx.AsyncClient, event_id: int, error: str) -> None:
    try:
        await client.post(
            f"{API_BASE}/notifications/{event_id}/fail",
            json={"error_message": error},
        )
    except httpx.HTTPError:
        logger.exception("failed to record failure for notification %s", event_id)


# ---------- Telegram calls ----------


async def send_message(
    client: httpx.AsyncClient,
    base_url: str,
    chat_id: int,
    text: str,
    keyboard: Optional[List[List[Dict[str, str]]]] = None,
) -> None:
    payload: Dict[str, Any] = {"chat_id": chat_id, "text": text}
    if keyboard:
        payload["reply_markup"] = {"inline_keyboard": keyboard}

    resp = await client.post(f"{base_url}/sendMessage", json=payload)
    resp.raise_for_status()


async def answer_callback_query(client: httpx.AsyncClient, base_url: str, callback_id: str, text: str) -> None:
    try:
        await client.post(
            f"{base_url}/answerCallbackQuery",
            json={"callback_query_id": callback_id, "text": text},
        )
    except httpx.HTTPError:
        logger.exception("failed to answer callback %s", callback_id)


# ---------- Handlers ----------


async def handle_command(
    client: httpx.AsyncClient,
    base_url: str,
    chat_id: int,
    text: str,
    message: dict,
) -> None:
    if text.startswith("/start"):
        await register_chat_with_backend(client, message["chat"])
        msg = dedent(
            """
            👋 Hi, I'm HabitBell.

            Your reminders will show up here with Done and Snooze buttons.
            - today's progress: /today
            - your reminders: /reminders
            """
        ).strip()
        await send_message(client, base_url, chat_id, msg)
        return

    if text.startswith("/today"):
        data = await call_backend(client, "/status/today")
        await send_message(client, base_url, chat_id, format_today_message(data))
        return

    if text.startswith("/reminders"):
        reminders = await call_backend(client, "/reminders")
        await send_message(client, base_url, chat_id, format_reminders_message(reminders))
        return

    await send_message(client, base_url, chat_id, "I know /today and /reminders.")


async def deliver_notification(client: httpx.AsyncClient, base_url: str, notif: dict) -> None:
    payload = notif.get("payload") or {}
    channel = notif.get("channel") or payload.get("channel")
    if channel != "telegram":
        raise ValueError(f"unsupported channel {channel}")

    chat_id = payload.get("chat_id")
    if not chat_id:
        raise ValueError("missing chat_id")

    text = payload.get("text") or "⏰ Reminder"
    reminder_id = payload.get("reminder_id")
    actions = payload.get("actions") or []

    keyboard = build_inline_keyboard(actions, reminder_id) if reminder_id and actions else None
    await send_message(client, base_url, chat_id, text, keyboard)


async def process_pending_notifications(client: httpx.AsyncClient, base_url: str) -> None:
    try:
        notifications = await fetch_pending_notifications(client)
    except httpx.HTTPError as exc:
        logger.warning("could not fetch pending notifications: %s", exc)
        return

    for notif in notifications:
        event_id = notif.get("id")
        if not event_id:
            continue
        try:
            await deliver_notification(client, base_url, notif)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("delivery of notification %s failed: %s", event_id, exc)
            await fail_notification(client, event_id, str(exc)[:500])
        else:
            await ack_notification(client, event_id)
        await asyncio.sleep(0)  # yield control


async def handle_callback_query(client: httpx.AsyncClient, base_url: str, callback_query: dict) -> None:
    data = callback_query.get("data") or ""
    callback_id = callback_query.get("id")
    chat_id = ((callback_query.get("message") or {}).get("chat") or {}).get("id")

    if not callback_id:
        return

    parsed = parse_callback_data(data)
    if parsed is None:
        await answer_callback_query(client, base_url, callback_id, "Unsupported action.")
        return

    action, reminder_id = parsed
    try:
        result = await post_reminder_action(client, action, reminder_id)
    except httpx.HTTPError:
        logger.exception("action %s for reminder %s failed", action, reminder_id)
        await answer_callback_query(client, base_url, callback_id, "Failed, try again.")
        return

    reply = "Snoozed." if result.get("snooze_identifier") else "Marked done."
    if not result.get("ok"):
        reply = "Notifications are off, nothing scheduled."
    await answer_callback_query(client, base_url, callback_id, reply)
    if chat_id:
        await send_message(client, base_url, chat_id, reply)


# ---------- Polling loop ----------


def build_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(connect=10.0, read=60.0, write=10.0, pool=10.0),
        transport=httpx.AsyncHTTPTransport(retries=3),
        limits=httpx.Limits(max_keepalive_connections=0, max_connections=10),
    )


async def check_bot_identity(client: httpx.AsyncClient, base_url: str) -> bool:
    try:
        resp = await client.get(f"{base_url}/getMe")
        resp.raise_for_status()
    except httpx.HTTPError as exc:
        logger.error("getMe failed: %s", exc)
        return False
    username = resp.json().get("result", {}).get("username")
    logger.info("bot connected as @%s, API base %s", username or "unknown", API_BASE)
    return True


async def handle_update(client: httpx.AsyncClient, base_url: str, update: dict) -> None:
    if update.get("callback_query"):
        await handle_callback_query(client, base_url, update["callback_query"])
        return

    message = update.get("message") or {}
    chat_id = (message.get("chat") or {}).get("id")
    text = (message.get("text") or "").strip()
    if chat_id and text:
        await handle_command(client, base_url, chat_id, text, message)


async def get_updates(client: httpx.AsyncClient, base_url: str, offset: Optional[int]) -> Optional[list[dict]]:
    """One long poll. None when Telegram answered with an error status."""

    params: Dict[str, Any] = {"timeout": TELEGRAM_POLL_TIMEOUT}
    if offset is not None:
        params["offset"] = offset

    resp = await client.get(f"{base_url}/getUpdates", params=params)
    if resp.status_code != 200:
        logger.warning("getUpdates HTTP %s: %s", resp.status_code, resp.text[:200])
        return None
    return resp.json().get("result", [])


async def polling_loop() -> None:
    base_url = _build_telegram_base_url()
    offset: Optional[int] = None
    next_outbox_poll = 0.0
    loop = asyncio.get_running_loop()
    identity_checked = False

    while True:
        try:
            async with build_client() as client:
                if not identity_checked:
                    if not await check_bot_identity(client, base_url):
                        return
                    identity_checked = True

                while True:
                    try:
                        updates = await get_updates(client, base_url, offset)
                    except httpx.RequestError as exc:
                        logger.warning("getUpdates request error (%s): %s", type(exc).__name__, exc)
                        break  # recreate client
                    if updates is None:
                        await asyncio.sleep(5)
                        continue

                    for update in updates:
                        offset = update["update_id"] + 1
                        await handle_update(client, base_url, update)

                    if loop.time() >= next_outbox_poll:
                        await process_pending_notifications(client, base_url)
                        next_outbox_poll = loop.time() + NOTIFICATION_POLL_INTERVAL
        except Exception:
            logger.exception("telegram client loop error")

        await asyncio.sleep(2)


async def main() -> None:
    logging.basicConfig(level=settings.log_level)
    logger.info("starting HabitBell Telegram polling bot")
    await polling_loop()


if __name__ == "__main__":
    asyncio.run(main())
