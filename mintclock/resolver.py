"""
Event Resolution

Picks one time signal per candidate event, turns it into a UTC instant and
decides whether the event belongs to the configured window.

Signals are consulted in the order given by ``SIGNAL_PRIORITY``. The first
signal whose text parses decides the outcome:

- absolute instant: used as is
- relative ahead: added to the scrape instant
- relative ago: the event already happened; the row is excluded and no
  other signal is looked at

Per-row failures never abort a pass. They are raised internally as
`RowExclusion` subclasses and recorded on the returned `ResolvedEvent`.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .conf import apply_settings
from .listing import format_price, normalize_chain, normalize_text, parse_supply
from .signals import RawTimeSignal, SignalKind
from .time_text_parser import ParseKind, time_text_parser
from .utils import format_hhmm, get_timezone_from_tz_string, start_of_day, utc_day_of

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 3600


# =============================================================================
# Data Structures
# =============================================================================

class ExclusionReason(str, Enum):
    PAST = "past"
    UNPARSEABLE = "unparseable"
    OUT_OF_WINDOW = "out_of_window"


class RowExclusion(Exception):
    """A candidate event was dropped; the pass continues with the next row."""
    reason: ExclusionReason

    def __init__(self, message, signal=None, event_utc=None):
        super().__init__(message)
        self.signal = signal
        self.event_utc = event_utc


class ParseFailure(RowExclusion):
    reason = ExclusionReason.UNPARSEABLE


class PastEvent(RowExclusion):
    reason = ExclusionReason.PAST


class OutOfWindow(RowExclusion):
    reason = ExclusionReason.OUT_OF_WINDOW


@dataclass(frozen=True)
class EventBundle:
    """Everything a collector saw for one candidate event."""
    project: str
    raw_time_signals: Tuple[RawTimeSignal, ...]
    scraped_at: int                         # epoch seconds, UTC
    chain: Optional[str] = None
    supply: Any = None
    price: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EventBundle":
        project = normalize_text(data.get("project"))
        if not project:
            raise ValueError("Bundle has no project name: %r" % (data,))

        scraped_at = data.get("scrapedAt", data.get("scraped_at"))
        if isinstance(scraped_at, bool) or not isinstance(scraped_at, int):
            raise ValueError(
                "scrapedAt must be integer epoch seconds, got %r" % (scraped_at,)
            )

        raw_signals = data.get("rawTimeSignals", data.get("raw_time_signals")) or []
        return cls(
            project=project,
            raw_time_signals=tuple(RawTimeSignal.from_dict(s) for s in raw_signals),
            scraped_at=scraped_at,
            chain=data.get("chain"),
            supply=data.get("supply"),
            price=data.get("price"),
        )

    def at(self, scraped_at: int) -> "EventBundle":
        """Copy of the bundle evaluated against another reference instant."""
        return EventBundle(
            project=self.project,
            raw_time_signals=self.raw_time_signals,
            scraped_at=scraped_at,
            chain=self.chain,
            supply=self.supply,
            price=self.price,
        )


@dataclass(frozen=True)
class ResolvedEvent:
    """Outcome of resolving one bundle.

    `event_utc_rounded` is filled in by the HourRounder; everything else is
    set by the resolver.
    """
    project: str
    scraped_at: int
    event_utc: Optional[int] = None
    event_utc_rounded: Optional[int] = None
    included: bool = False
    exclusion_reason: Optional[ExclusionReason] = None
    signal: Optional[RawTimeSignal] = field(default=None, compare=False)
    chain: str = "unknown"
    supply: Optional[int] = None
    price: Optional[str] = None

    @property
    def event_utc_hhmm(self) -> Optional[str]:
        return format_hhmm(self.event_utc)

    @property
    def event_utc_rounded_hhmm(self) -> Optional[str]:
        return format_hhmm(self.event_utc_rounded)

    def to_dict(self, diagnostics: bool = False) -> Dict[str, Any]:
        result = {
            "project": self.project,
            "chain": self.chain,
            "event_utc": self.event_utc,
            "event_utc_rounded": self.event_utc_rounded,
            "event_utc_hhmm": self.event_utc_hhmm,
            "event_utc_rounded_hhmm": self.event_utc_rounded_hhmm,
            # field names used by earlier exports
            "utc_time": self.event_utc_hhmm,
            "timestamp_utc": self.event_utc,
            "event_unix_utc": self.event_utc,
            "utc_time_rounded": self.event_utc_rounded_hhmm,
            "timestamp_utc_rounded": self.event_utc_rounded,
            "public_price": self.price,
            "supply": self.supply,
        }
        if diagnostics:
            result["scraped_at"] = self.scraped_at
            result["included"] = self.included
            result["exclusion_reason"] = (
                self.exclusion_reason.value if self.exclusion_reason else None
            )
            result["signal"] = self.signal.to_dict() if self.signal else None
        return result


# =============================================================================
# EventResolver
# =============================================================================

class EventResolver:
    """
    Resolve bundles into ResolvedEvents against one configuration.

    The timezone is looked up at construction time, so a bad configuration
    fails before any row is processed.
    """

    @apply_settings
    def __init__(self, parser=None, settings=None):
        self._settings = settings
        self._zone = get_timezone_from_tz_string(settings.TIMEZONE)
        self._parser = parser or time_text_parser
        self._priority = [SignalKind(kind) for kind in settings.SIGNAL_PRIORITY]

    @property
    def settings(self):
        return self._settings

    def window_bounds(self, scraped_at: int) -> Tuple[int, int]:
        """Half-open [start, end) interval of instants kept for this scrape."""
        if self._settings.WINDOW_MODE == "rolling":
            return scraped_at, scraped_at + self._settings.WINDOW_HOURS * 3600
        start = start_of_day(scraped_at, self._zone)
        return start, start + DAY_SECONDS

    def resolve(self, bundle: EventBundle) -> ResolvedEvent:
        listing = {
            "chain": normalize_chain(bundle.chain),
            "supply": parse_supply(bundle.supply),
            "price": format_price(bundle.price, bundle.chain),
        }

        try:
            signal, event_utc = self._select_instant(bundle)
            self._check_window(event_utc, bundle.scraped_at, signal)
        except RowExclusion as exc:
            logger.debug(f"Excluded {bundle.project!r} ({exc.reason.value}): {exc}")
            return ResolvedEvent(
                project=bundle.project,
                scraped_at=bundle.scraped_at,
                event_utc=exc.event_utc,
                included=False,
                exclusion_reason=exc.reason,
                signal=exc.signal,
                **listing,
            )

        return ResolvedEvent(
            project=bundle.project,
            scraped_at=bundle.scraped_at,
            event_utc=event_utc,
            included=True,
            signal=signal,
            **listing,
        )

    def _select_instant(self, bundle):
        today = utc_day_of(bundle.scraped_at)

        for kind in self._priority:
            for signal in bundle.raw_time_signals:
                if signal.kind is not kind:
                    continue
                parsed = self._parser.parse(signal.text, today)
                if parsed is None:
                    continue

                event_utc = parsed.resolve(bundle.scraped_at)
                if parsed.kind is ParseKind.RELATIVE_AGO:
                    raise PastEvent(
                        f"{signal.text!r} is in the past", signal=signal, event_utc=event_utc
                    )
                return signal, event_utc

        raise ParseFailure(
            "none of %d time signals could be parsed" % len(bundle.raw_time_signals)
        )

    def _check_window(self, event_utc, scraped_at, signal):
        earliest = scraped_at - self._settings.PAST_TOLERANCE_SECONDS
        if event_utc < earliest:
            raise PastEvent(
                "event at %d precedes scrape at %d" % (event_utc, scraped_at),
                signal=signal,
                event_utc=event_utc,
            )

        start, end = self.window_bounds(scraped_at)
        if not start <= event_utc < end:
            raise OutOfWindow(
                "event at %d outside [%d, %d)" % (event_utc, start, end),
                signal=signal,
                event_utc=event_utc,
            )
