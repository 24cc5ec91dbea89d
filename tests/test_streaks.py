"""Streak computation over local calendar days."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from habitbell.core.streaks import compute_streak

UTC = timezone.utc
NEW_YORK = ZoneInfo("America/New_York")


def ms(*args, tz=UTC) -> int:
    return int(datetime(*args, tzinfo=tz).timestamp() * 1000)


NOW = datetime(2024, 5, 20, 18, 0, tzinfo=UTC)


class TestComputeStreak:
    def test_no_completions(self):
        result = compute_streak([], now=NOW, tz=UTC)
        assert (result.current_streak, result.longest_streak) == (0, 0)

    def test_run_ending_today(self):
        stamps = [ms(2024, 5, 18, 9), ms(2024, 5, 19, 9), ms(2024, 5, 20, 9)]
        result = compute_streak(stamps, now=NOW, tz=UTC)
        assert (result.current_streak, result.longest_streak) == (3, 3)

    def test_run_ending_yesterday_still_counts(self):
        stamps = [ms(2024, 5, 18, 9), ms(2024, 5, 19, 9)]
        assert compute_streak(stamps, now=NOW, tz=UTC).current_streak == 2

    def test_gap_breaks_current_but_keeps_longest(self):
        stamps = [ms(2024, 5, d, 9) for d in (10, 11, 12, 13)] + [ms(2024, 5, 17, 9)]
        result = compute_streak(stamps, now=NOW, tz=UTC)
        assert result.current_streak == 0
        assert result.longest_streak == 4

    def test_several_completions_same_day_count_once(self):
        stamps = [ms(2024, 5, 20, 7), ms(2024, 5, 20, 12), ms(2024, 5, 20, 17)]
        result = compute_streak(stamps, now=NOW, tz=UTC)
        assert (result.current_streak, result.longest_streak) == (1, 1)

    def test_order_does_not_matter(self):
        stamps = [ms(2024, 5, 20, 9), ms(2024, 5, 18, 9), ms(2024, 5, 19, 9)]
        assert compute_streak(stamps, now=NOW, tz=UTC).longest_streak == 3

    def test_days_are_local_to_the_observer(self):
        # 03:00 UTC on the 20th is still the 19th in New York
        stamps = [ms(2024, 5, 19, 13), ms(2024, 5, 20, 3)]
        assert compute_streak(stamps, now=NOW, tz=UTC).longest_streak == 2
        assert compute_streak(stamps, now=NOW, tz=NEW_YORK).longest_streak == 1

    def test_consecutive_across_dst_change(self):
        # New York springs forward on 2024-03-10, a 23 hour day
        stamps = [ms(2024, 3, 9, 23, 30, tz=NEW_YORK), ms(2024, 3, 10, 23, 30, tz=NEW_YORK),
                  ms(2024, 3, 11, 0, 10, tz=NEW_YORK)]
        now = datetime(2024, 3, 11, 12, 0, tzinfo=NEW_YORK)
        result = compute_streak(stamps, now=now, tz=NEW_YORK)
        assert (result.current_streak, result.longest_streak) == (3, 3)

    def test_three_days_ending_yesterday_when_today_not_done(self):
        stamps = [ms(2024, 5, d, 9) for d in (17, 18, 19)]
        result = compute_streak(stamps, now=NOW, tz=UTC)
        assert (result.current_streak, result.longest_streak) == (3, 3)

    def test_gap_day_splits_runs(self):
        stamps = [ms(2024, 5, 1, 9), ms(2024, 5, 3, 9)]
        assert compute_streak(stamps, now=NOW, tz=UTC) == compute_streak(stamps[::-1], now=NOW, tz=UTC)
        result = compute_streak(stamps, now=NOW, tz=UTC)
        assert (result.current_streak, result.longest_streak) == (0, 1)
        # same log read on day 4: day 3 was yesterday
        later = compute_streak(stamps, now=datetime(2024, 5, 4, 8, 0, tzinfo=UTC), tz=UTC)
        assert (later.current_streak, later.longest_streak) == (1, 1)
