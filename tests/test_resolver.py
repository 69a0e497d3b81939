"""
Tests for signal selection and window filtering.
"""

import pytest

from mintclock.conf import SettingValidationError
from mintclock.resolver import (
    EventBundle,
    EventResolver,
    ExclusionReason,
    ResolvedEvent,
)
from mintclock.signals import RawTimeSignal, SignalKind

# 2023-11-14 00:00:00 UTC
MIDNIGHT = 1699920000
# 2023-11-14 10:00:00 UTC
SCRAPED_AT = MIDNIGHT + 10 * 3600

ATTRIBUTE = SignalKind.ABSOLUTE_ATTRIBUTE
TOOLTIP = SignalKind.ABSOLUTE_TOOLTIP
AHEAD = SignalKind.RELATIVE_AHEAD
AGO = SignalKind.RELATIVE_AGO


def bundle(*signals, scraped_at=SCRAPED_AT, project="Foo"):
    return EventBundle(
        project=project,
        raw_time_signals=tuple(RawTimeSignal(kind, text) for kind, text in signals),
        scraped_at=scraped_at,
    )


@pytest.fixture
def resolver():
    return EventResolver()


class TestSignalPriority:
    """Tests for choosing between several signals of one row."""

    def test_relative_ahead(self, resolver):
        event = resolver.resolve(bundle((AHEAD, "5H")))
        assert event.included
        assert event.event_utc == SCRAPED_AT + 5 * 3600
        assert event.exclusion_reason is None

    def test_absolute_beats_relative(self, resolver):
        event = resolver.resolve(bundle((AHEAD, "1H"), (ATTRIBUTE, "22:00 UTC")))
        assert event.event_utc == MIDNIGHT + 22 * 3600
        assert event.signal == RawTimeSignal(ATTRIBUTE, "22:00 UTC")

    def test_attribute_beats_tooltip(self, resolver):
        event = resolver.resolve(bundle((TOOLTIP, "21:00 UTC"), (ATTRIBUTE, "20:00 UTC")))
        assert event.event_utc == MIDNIGHT + 20 * 3600

    def test_unparseable_attribute_falls_back_to_tooltip(self, resolver):
        event = resolver.resolve(bundle((ATTRIBUTE, "TBA"), (TOOLTIP, "21:00 UTC")))
        assert event.included
        assert event.event_utc == MIDNIGHT + 21 * 3600

    def test_custom_priority(self):
        resolver = EventResolver(settings={
            "SIGNAL_PRIORITY": ["relative-ahead", "absolute-attribute"],
        })
        event = resolver.resolve(bundle((ATTRIBUTE, "22:00 UTC"), (AHEAD, "1H")))
        assert event.event_utc == SCRAPED_AT + 3600

    def test_unlisted_kind_is_ignored(self):
        resolver = EventResolver(settings={"SIGNAL_PRIORITY": ["absolute-tooltip"]})
        event = resolver.resolve(bundle((AHEAD, "1H")))
        assert event.exclusion_reason == ExclusionReason.UNPARSEABLE

    def test_unclassified_signal_only_when_listed(self, resolver):
        row = bundle((SignalKind.UNPARSEABLE, "3H"))
        assert resolver.resolve(row).exclusion_reason == "unparseable"

        resolver = EventResolver(settings={
            "SIGNAL_PRIORITY": ["absolute-attribute", "unparseable"],
        })
        assert resolver.resolve(row).event_utc == SCRAPED_AT + 3 * 3600


class TestPastEvents:
    """Tests for 'ago' signals and absolute instants before the scrape."""

    @pytest.mark.parametrize("text", ["5H ago", "120M ago", "3D ago", "1M ago"])
    def test_ago_is_always_past(self, resolver, text):
        event = resolver.resolve(bundle((AGO, text)))
        assert not event.included
        assert event.exclusion_reason == ExclusionReason.PAST

    def test_ago_stops_the_search(self, resolver):
        """Test a later usable signal cannot rescue a row once 'ago' was seen."""
        event = resolver.resolve(bundle((AHEAD, "2H ago"), (AHEAD, "3H")))
        assert event.exclusion_reason == "past"
        assert event.event_utc == SCRAPED_AT - 2 * 3600

    def test_absolute_before_scrape(self, resolver):
        event = resolver.resolve(bundle((ATTRIBUTE, "08:00 UTC")))
        assert event.exclusion_reason == ExclusionReason.PAST

    def test_render_latency_tolerance(self, resolver):
        """Test a tooltip two minutes before the scrape instant still counts."""
        event = resolver.resolve(bundle((TOOLTIP, "09:58 UTC")))
        assert event.included

    def test_zero_tolerance(self):
        resolver = EventResolver(settings={"PAST_TOLERANCE_SECONDS": 0})
        event = resolver.resolve(bundle((TOOLTIP, "09:58 UTC")))
        assert event.exclusion_reason == ExclusionReason.PAST


class TestZoneAbbreviations:

    def test_tooltip_in_cet(self, resolver):
        event = resolver.resolve(bundle((TOOLTIP, "Nov 14 2023 22:00 CET")))
        assert event.included
        assert event.event_utc == MIDNIGHT + 21 * 3600

    def test_unknown_zone_falls_back_to_next_signal(self, resolver):
        event = resolver.resolve(bundle((TOOLTIP, "Nov 14 2023 22:00 XYZT"), (AHEAD, "2H")))
        assert event.event_utc == SCRAPED_AT + 2 * 3600


class TestUnparseable:

    def test_no_signals(self, resolver):
        event = resolver.resolve(bundle())
        assert not event.included
        assert event.exclusion_reason == ExclusionReason.UNPARSEABLE
        assert event.event_utc is None

    def test_nothing_parses(self, resolver):
        event = resolver.resolve(bundle((ATTRIBUTE, "soon"), (AHEAD, "TBA")))
        assert event.exclusion_reason == ExclusionReason.UNPARSEABLE


class TestCalendarDayWindow:
    """Tests for the midnight-to-midnight filter."""

    def test_next_utc_day_is_out_of_window(self, resolver):
        event = resolver.resolve(bundle((ATTRIBUTE, "Nov 15, 2023 09:00 UTC")))
        assert event.exclusion_reason == ExclusionReason.OUT_OF_WINDOW
        assert event.event_utc == MIDNIGHT + 86400 + 9 * 3600

    def test_last_minute_of_local_day(self):
        """Test 23:59 local is kept and 00:01 next local day is not, in UTC+2."""
        resolver = EventResolver(settings={"TIMEZONE": "Etc/GMT-2"})

        late = resolver.resolve(bundle((ATTRIBUTE, "21:59 UTC")))
        assert late.included

        next_day = resolver.resolve(bundle((ATTRIBUTE, "22:01 UTC")))
        assert next_day.exclusion_reason == ExclusionReason.OUT_OF_WINDOW

    def test_window_bounds(self):
        resolver = EventResolver(settings={"TIMEZONE": "Etc/GMT-2"})
        start, end = resolver.window_bounds(SCRAPED_AT)
        assert start == MIDNIGHT - 2 * 3600
        assert end == start + 86400


class TestRollingWindow:
    """Tests for the window following the scrape instant."""

    @pytest.fixture
    def rolling(self):
        return EventResolver(settings={"WINDOW_MODE": "rolling", "WINDOW_HOURS": 6})

    def test_inside(self, rolling):
        assert rolling.resolve(bundle((AHEAD, "5H"))).included

    def test_end_is_exclusive(self, rolling):
        event = rolling.resolve(bundle((AHEAD, "6H")))
        assert event.exclusion_reason == ExclusionReason.OUT_OF_WINDOW

    def test_default_length_crosses_midnight(self):
        resolver = EventResolver(settings={"windowMode": "rolling"})
        event = resolver.resolve(bundle((ATTRIBUTE, "Nov 15, 2023 09:00 UTC")))
        assert event.included


class TestConfiguration:
    """Tests for configuration errors surfacing before any row."""

    def test_unknown_timezone(self):
        with pytest.raises(SettingValidationError):
            EventResolver(settings={"TIMEZONE": "Mars/Olympus_Mons"})

    def test_non_positive_window(self):
        with pytest.raises(SettingValidationError):
            EventResolver(settings={"WINDOW_MODE": "rolling", "WINDOW_HOURS": 0})


class TestEventBundle:
    """Tests for building bundles from collector dicts."""

    def test_from_dict(self):
        row = EventBundle.from_dict({
            "project": "  Foo ",
            "rawTimeSignals": [{"kind": "relative-ahead", "text": "9H"}],
            "scrapedAt": 1700000000,
            "chain": "SOL",
        })
        assert row.project == "Foo"
        assert row.raw_time_signals == (RawTimeSignal(AHEAD, "9H"),)
        assert row.scraped_at == 1700000000
        assert row.chain == "SOL"

    def test_snake_case_and_missing_signals(self):
        row = EventBundle.from_dict({"project": "Foo", "scraped_at": 1700000000})
        assert row.raw_time_signals == ()

    @pytest.mark.parametrize("data", [
        {"rawTimeSignals": [], "scrapedAt": 1700000000},
        {"project": "Foo", "scrapedAt": "1700000000"},
        {"project": "Foo", "scrapedAt": 1700000000, "rawTimeSignals": [{"kind": "hover", "text": "1H"}]},
        {"project": "Foo", "scrapedAt": 1700000000, "rawTimeSignals": [{"text": "1H"}]},
    ])
    def test_malformed(self, data):
        with pytest.raises(ValueError):
            EventBundle.from_dict(data)


class TestResolvedEvent:

    def test_listing_fields_are_normalized(self, resolver):
        row = EventBundle(
            project="Foo",
            raw_time_signals=(RawTimeSignal(AHEAD, "1H"),),
            scraped_at=SCRAPED_AT,
            chain="eth",
            supply="Supply: 3,333",
            price="Price: 0.05",
        )
        event = resolver.resolve(row)
        assert event.chain == "ethereum"
        assert event.supply == 3333
        assert event.price == "0.05 Ξ"

    def test_to_dict(self):
        event = ResolvedEvent(
            project="Foo",
            scraped_at=SCRAPED_AT,
            event_utc=MIDNIGHT + 14 * 3600 + 29 * 60,
            event_utc_rounded=MIDNIGHT + 14 * 3600,
            included=True,
        )
        data = event.to_dict()
        assert data["event_utc_hhmm"] == "14:29"
        assert data["utc_time_rounded"] == "14:00"
        assert data["timestamp_utc"] == data["event_unix_utc"] == event.event_utc
        assert "exclusion_reason" not in data
        assert event.to_dict(diagnostics=True)["included"] is True
