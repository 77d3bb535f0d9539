"""Tests for release time, time zone and title helpers."""

from datetime import datetime, time
from zoneinfo import ZoneInfo

import pytest

from showkeeper.config import Config
from showkeeper.utilities.titles import trim_leading_article
from showkeeper.utilities.tz import (
    DEFAULT_RELEASE_TIME,
    encode_release_time,
    get_show_release_time,
    get_show_timezone,
    parse_episode_release_date,
    parse_release_weekday,
)

NEW_YORK = ZoneInfo("America/New_York")


def _ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


# =============================================================================
# RELEASE TIME AND WEEKDAY
# =============================================================================


class TestEncodeReleaseTime:
    @pytest.mark.parametrize(
        "release_time_ms,expected",
        [
            (None, -1),
            (-1, -1),
            (0, 1600),
            ((4 * 60 + 30) * 60 * 1000, 2030),
            (8 * 60 * 60 * 1000, 0),
            ("8:00 PM", -1),
            ("-1", -1),
            ("0", 1600),
            (10**20, -1),
        ],
    )
    def test_encoding(self, release_time_ms, expected):
        assert encode_release_time(release_time_ms) == expected


class TestParseReleaseWeekday:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("Monday", 1),
            ("sunday", 7),
            ("Wed", 3),
            ("SAT", 6),
            ("Daily", 0),
            ("", -1),
            (None, -1),
            ("Someday", -1),
            (5, 5),
        ],
    )
    def test_parsing(self, value, expected):
        assert parse_release_weekday(value) == expected


class TestShowReleaseTime:
    def test_decodes_hhmm(self):
        assert get_show_release_time(2030) == time(20, 30)

    @pytest.mark.parametrize("encoded", [None, -1, 2460, 1275])
    def test_invalid_uses_default(self, encoded):
        assert get_show_release_time(encoded) == DEFAULT_RELEASE_TIME


# =============================================================================
# TIME ZONES
# =============================================================================


class TestShowTimezone:
    def test_known_zone(self):
        assert get_show_timezone("Europe/Berlin") == ZoneInfo("Europe/Berlin")

    @pytest.mark.parametrize("name", [None, "", "Mars/Olympus"])
    def test_fallback_to_default(self, name, monkeypatch):
        monkeypatch.setattr(Config, "_show_timezone_from_env", None)
        assert get_show_timezone(name) == NEW_YORK

    def test_fallback_from_environment(self, monkeypatch):
        monkeypatch.setattr(Config, "_show_timezone_from_env", "Europe/London")
        assert get_show_timezone(None) == ZoneInfo("Europe/London")


class TestParseEpisodeReleaseDate:
    def test_show_zone(self):
        result = parse_episode_release_date(NEW_YORK, "2010-03-15", time(21, 0), "GB", "UTC")
        assert result == _ms(datetime(2010, 3, 15, 21, 0, tzinfo=NEW_YORK))

    def test_us_show_on_us_device(self):
        """Airs at the same local time on a US device."""
        result = parse_episode_release_date(
            NEW_YORK, "2010-03-15", time(21, 0), "US", "America/Los_Angeles"
        )
        expected = datetime(2010, 3, 15, 21, 0, tzinfo=ZoneInfo("America/Los_Angeles"))
        assert result == _ms(expected)

    def test_us_central_one_hour_earlier(self):
        result = parse_episode_release_date(
            NEW_YORK, "2010-03-15", time(21, 0), "US", "America/Chicago"
        )
        expected = datetime(2010, 3, 15, 20, 0, tzinfo=ZoneInfo("America/Chicago"))
        assert result == _ms(expected)

    def test_us_show_elsewhere_uses_show_zone(self):
        result = parse_episode_release_date(
            NEW_YORK, "2010-03-15", time(21, 0), "US", "Europe/Berlin"
        )
        assert result == _ms(datetime(2010, 3, 15, 21, 0, tzinfo=NEW_YORK))

    @pytest.mark.parametrize(
        "text", [None, "", "   ", "soon", "2010", "March 2010", "20:00", "15", "Monday"]
    )
    def test_unparseable(self, text):
        assert parse_episode_release_date(NEW_YORK, text, time(20, 0), None, "UTC") == -1


# =============================================================================
# TITLES
# =============================================================================


class TestTrimLeadingArticle:
    @pytest.mark.parametrize(
        "title,expected",
        [
            ("The Wire", "Wire"),
            ("the office", "office"),
            ("A Team", "Team"),
            ("An Idiot Abroad", "Idiot Abroad"),
            ("A-Team", "A-Team"),
            ("Theater", "Theater"),
            ("The", "The"),
            ("The ", "The "),
            ("THE Wire", "THE Wire"),
            ("AN Idiot Abroad", "AN Idiot Abroad"),
            ("The\tWire", "The\tWire"),
            ("The  Wire", " Wire"),
            ("Breaking Bad", "Breaking Bad"),
            ("", ""),
            (None, None),
        ],
    )
    def test_trim(self, title, expected):
        assert trim_leading_article(title) == expected
