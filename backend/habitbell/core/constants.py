NOTIFICATION_CHANNEL_ID = "reminder-alerts"

# Category carrying the Done / Snooze action buttons
REMINDER_CATEGORY_ID = "reminder-actions"

NOTIFICATION_ACTION_MARK_DONE = "mark_done"
SNOOZE_ACTION_PREFIX = "snooze_"

TEST_NOTIFICATION_ID = "reminder_test_sample"

# [delay, vibrate, pause, vibrate, ...] in ms
VIBRATION_PATTERNS = {
    "default": [0, 250, 250, 250],
    "strong": [0, 500, 200, 500],
    "double": [0, 200, 100, 200, 100, 200],
    "none": [],
}

SEED_CATEGORY_NAMES = ("Health", "Fitness", "Study")
