"""Pure helpers of the Telegram polling bot."""

from habitbell.core.notification_dispatcher import reminder_actions
from habitbell.integrations.telegram_polling_bot import (
    build_inline_keyboard,
    callback_data,
    format_reminders_message,
    format_today_message,
    parse_callback_data,
)


class TestCallbackData:
    def test_round_trip(self):
        data = callback_data("snooze_10", "rem_1700000000000_ab12cd3")
        assert data == "snooze_10|rem_1700000000000_ab12cd3"
        assert parse_callback_data(data) == ("snooze_10", "rem_1700000000000_ab12cd3")
        assert len(data.encode()) <= 64

    def test_malformed(self):
        assert parse_callback_data("done:12") is None
        assert parse_callback_data("|rem_1") is None
        assert parse_callback_data("mark_done|") is None


class TestKeyboard:
    def test_rows_of_three(self):
        keyboard = build_inline_keyboard(reminder_actions([5, 10, 15, 30]), "rem_1")
        assert [len(row) for row in keyboard] == [3, 2]
        assert keyboard[0][0] == {"text": "Done", "callback_data": "mark_done|rem_1"}
        assert keyboard[1][-1]["callback_data"] == "snooze_30|rem_1"


class TestFormatting:
    def test_reminders(self):
        text = format_reminders_message([
            {"title": "Water", "enabled": True, "schedule_label": "Every 30 min"},
            {"title": "Run", "enabled": False, "schedule_label": "Mon, Wed at 07:00"},
        ])
        assert "✅ Water: Every 30 min" in text
        assert "⏸️ Run: Mon, Wed at 07:00" in text
        assert format_reminders_message([]) == "No reminders configured yet."

    def test_today(self):
        text = format_today_message({
            "date": "2024-05-20",
            "completions_today": 3,
            "reminders_enabled": 4,
            "done_reminder_ids": ["a", "b"],
            "best_streak": {"title": "Water", "current_streak": 6},
            "next_notification": None,
        })
        assert "2/4 reminders done" in text
        assert "Water (6 days)" in text
        assert "Nothing scheduled." in text
