"""
Time Text Parsing

Turns one scraped time token into either an absolute UTC instant or a signed
offset from the scrape instant. Token families, highest priority first:

1. Fully qualified datetime: "Tue Nov 14 2023 22:00:00 GMT+0100 (CET)",
   "Nov 14, 2023 10:00 PM UTC", "2023-11-14T22:00:00Z"
2. Clock time with UTC marker: "22:00 UTC" (date taken from the context day)
3. Day-first numeric date and time: "14/11/2023 22:00", "14.11.23 22:00"
4. Relative ahead: "5H", "30M", "in 1D 2H"
5. Relative ago: "5H ago", "120M ago"

The first family whose handler produces a value wins. A handler that matches
textually but yields an impossible value ("31/02/2024 10:00") hands over to
the next family.
"""

import logging
import warnings
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import List, Optional

import regex as re
from dateutil import parser as dateutil_parser
from dateutil.parser import UnknownTimezoneWarning

from .utils import strip_braces, strip_parenthesised, to_epoch

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MAX_RELATIVE_SECONDS = 366 * 24 * 3600

_MONTH_NAMES = r"jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?|sept?(?:ember)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?"
_ISO_DATE = r"(?<!\d)\d{4}-\d{1,2}-\d{1,2}"
_CLOCK = r"(?<!\d)\d{1,2}:\d{2}|(?<!\d)\d{1,2}\s*[ap]\.?m\b"
_UNITS = r"minutes?|mins?|m|hours?|hrs?|h|days?|d"

RE_NBSP = re.compile("\xa0")
RE_SPACES = re.compile(r"\s+")

# "GMT+0200" means two hours ahead of UTC; dateutil reads the prefixed form
# POSIX style (inverted), so the prefix is dropped before parsing.
RE_PREFIXED_OFFSET = re.compile(r"\b(?:GMT|UTC)\s*(?=[+-]\d)", re.I)

RE_NUMERIC_DATE = re.compile(r"(?<!\d)\d{1,2}([/.-])\d{1,2}\1(?:\d{4}|\d{2})(?!\d)")

RELATIVE_GROUP = re.compile(r"(\d+)\s*(%s)(?![a-z])" % _UNITS, re.I)

# Fixed-offset abbreviations seen in listing tooltips; any other abbreviation
# rejects the token instead of being read as UTC.
TZ_ABBREVIATIONS = {
    "WET": 0, "BST": 3600, "WEST": 3600,
    "CET": 3600, "CEST": 2 * 3600,
    "EET": 2 * 3600, "EEST": 3 * 3600,
    "MSK": 3 * 3600,
    "SGT": 8 * 3600, "HKT": 8 * 3600,
    "JST": 9 * 3600, "KST": 9 * 3600,
    "AEST": 10 * 3600, "AEDT": 11 * 3600,
    "EST": -5 * 3600, "EDT": -4 * 3600,
    "CST": -6 * 3600, "CDT": -5 * 3600,
    "MST": -7 * 3600, "MDT": -6 * 3600,
    "PST": -8 * 3600, "PDT": -7 * 3600,
}

UNIT_SECONDS = {
    "m": 60,
    "h": 3600,
    "d": 24 * 3600,
}


# =============================================================================
# Result Types
# =============================================================================

class ParseKind(Enum):
    ABSOLUTE = "absolute"
    RELATIVE_AHEAD = "relative-ahead"
    RELATIVE_AGO = "relative-ago"


@dataclass(frozen=True)
class ParsedTime:
    """A successfully parsed time token.

    Absolute results carry `instant` (epoch seconds, UTC); relative results
    carry `offset_seconds`, negative when the token says "ago".
    """
    kind: ParseKind
    pattern: str
    instant: Optional[int] = None
    offset_seconds: Optional[int] = None

    @property
    def is_absolute(self) -> bool:
        return self.kind is ParseKind.ABSOLUTE

    def resolve(self, scraped_at: int) -> int:
        if self.is_absolute:
            return self.instant
        return scraped_at + self.offset_seconds


@dataclass
class TimePattern:
    """Definition of one token family."""
    name: str
    regex: re.Pattern
    handler: str  # Name of handler method
    priority: int


def sanitize_token(text):
    text = RE_NBSP.sub(" ", text or "")
    text = RE_SPACES.sub(" ", text)
    return text.strip()


def _relative_offset(groups) -> Optional[int]:
    offset = 0
    for digits, unit in groups:
        offset += UNIT_SECONDS[unit[0].lower()] * int(digits)
        if offset > MAX_RELATIVE_SECONDS:
            return None
    return offset


# =============================================================================
# TimeTextParser
# =============================================================================

class TimeTextParser:
    """
    Parser for single scraped time tokens.

    The parser holds no mutable state: the same token and context day always
    give the same result.
    """

    def __init__(self):
        self._patterns = self._compile_patterns()
        self._patterns.sort(key=lambda p: p.priority, reverse=True)

    def _compile_patterns(self) -> List[TimePattern]:
        patterns = []

        # "Tue Nov 14 2023 22:00:00 GMT+0100", "2023-11-14T22:00:00Z"
        patterns.append(TimePattern(
            name='full_datetime',
            regex=re.compile(
                r'^(?=.*(?:\b(?:%s)\b|%s))(?=.*(?:%s))' % (_MONTH_NAMES, _ISO_DATE, _CLOCK),
                re.IGNORECASE | re.DOTALL
            ),
            handler='handle_full_datetime',
            priority=50,
        ))

        # "22:00 UTC", "9:30 UTC+2"
        patterns.append(TimePattern(
            name='clock_utc',
            regex=re.compile(
                r'(?<!\d)([01]?\d|2[0-3]):([0-5]\d)\s*UTC\b'
                r'(?:\s*([+-])(\d{1,2})(?::?(\d{2}))?(?!\d))?',
                re.IGNORECASE
            ),
            handler='handle_clock_utc',
            priority=40,
        ))

        # "14/11/2023 22:00", "14-11-23 22:00", "14.11.2023 9:05"
        patterns.append(TimePattern(
            name='day_month_year_clock',
            regex=re.compile(
                r'(?<!\d)(\d{1,2})([/.-])(\d{1,2})\2(\d{4}|\d{2})(?!\d)[\sT,]+(\d{1,2}):(\d{2})(?!\d)'
            ),
            handler='handle_day_month_year_clock',
            priority=30,
        ))

        # "5H", "in 30 min", "1D 2H"
        patterns.append(TimePattern(
            name='relative_ahead',
            regex=re.compile(
                r'^(?:in\s+)?((?:\d+\s*(?:%s)(?![a-z])[\s,]*)+)$' % _UNITS,
                re.IGNORECASE
            ),
            handler='handle_relative_ahead',
            priority=20,
        ))

        # "5H ago", "120M ago"
        patterns.append(TimePattern(
            name='relative_ago',
            regex=re.compile(
                r'^((?:\d+\s*(?:%s)(?![a-z])[\s,]*)+)\s*ago$' % _UNITS,
                re.IGNORECASE
            ),
            handler='handle_relative_ago',
            priority=10,
        ))

        return patterns

    def parse(self, text: str, today: date) -> Optional[ParsedTime]:
        """
        Parse one token against the context day `today` (a UTC calendar date).

        :return: ParsedTime, or None when no family matches.
        """
        token = sanitize_token(text)
        if not token:
            return None

        for pattern in self._patterns:
            match = pattern.regex.search(token)
            if not match:
                continue
            handler = getattr(self, pattern.handler)
            result = handler(match, token, today)
            if result is not None:
                logger.debug(f"Time pattern '{pattern.name}' matched: {token!r}")
                return result
            logger.debug(f"Time pattern '{pattern.name}' rejected value in {token!r}")

        logger.debug(f"No time pattern matched: {token!r}")
        return None

    # =========================================================================
    # Handlers
    # =========================================================================

    def handle_full_datetime(self, match, token, today) -> Optional[ParsedTime]:
        text = strip_parenthesised(strip_braces(token))
        text = RE_PREFIXED_OFFSET.sub("", text)
        default = datetime.combine(today, time(0))
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("error", UnknownTimezoneWarning)
                parsed = dateutil_parser.parse(
                    text, default=default, fuzzy=True, tzinfos=TZ_ABBREVIATIONS
                )
        except UnknownTimezoneWarning as e:
            logger.debug(f"Unknown zone in {text!r}: {e}")
            return None
        except (ValueError, OverflowError) as e:
            logger.debug(f"dateutil could not parse {text!r}: {e}")
            return None

        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return ParsedTime(
            kind=ParseKind.ABSOLUTE,
            pattern='full_datetime',
            instant=to_epoch(parsed),
        )

    def handle_clock_utc(self, match, token, today) -> Optional[ParsedTime]:
        # a numeric date elsewhere in the token belongs to the day-first family
        if RE_NUMERIC_DATE.search(token):
            return None

        hour, minute = int(match.group(1)), int(match.group(2))
        instant = to_epoch(datetime.combine(today, time(hour, minute), tzinfo=timezone.utc))

        sign = match.group(3)
        if sign:
            offset_hours = int(match.group(4))
            offset_minutes = int(match.group(5) or 0)
            if offset_hours > 14 or offset_minutes > 59:
                return None
            offset = offset_hours * 3600 + offset_minutes * 60
            # 22:00 UTC+2 is 20:00 UTC
            instant -= offset if sign == '+' else -offset

        return ParsedTime(kind=ParseKind.ABSOLUTE, pattern='clock_utc', instant=instant)

    def handle_day_month_year_clock(self, match, token, today) -> Optional[ParsedTime]:
        day, month = int(match.group(1)), int(match.group(3))
        year = int(match.group(4))
        if len(match.group(4)) == 2:
            year += 2000
        try:
            dt = datetime(
                year, month, day,
                int(match.group(5)), int(match.group(6)),
                tzinfo=timezone.utc,
            )
        except ValueError:
            return None
        return ParsedTime(
            kind=ParseKind.ABSOLUTE,
            pattern='day_month_year_clock',
            instant=to_epoch(dt),
        )

    def handle_relative_ahead(self, match, token, today) -> Optional[ParsedTime]:
        offset = _relative_offset(RELATIVE_GROUP.findall(match.group(1)))
        if offset is None:
            return None
        return ParsedTime(
            kind=ParseKind.RELATIVE_AHEAD,
            pattern='relative_ahead',
            offset_seconds=offset,
        )

    def handle_relative_ago(self, match, token, today) -> Optional[ParsedTime]:
        offset = _relative_offset(RELATIVE_GROUP.findall(match.group(1)))
        if offset is None:
            return None
        return ParsedTime(
            kind=ParseKind.RELATIVE_AGO,
            pattern='relative_ago',
            offset_seconds=-offset,
        )


time_text_parser = TimeTextParser()


def parse_time_text(text: str, today: date) -> Optional[ParsedTime]:
    return time_text_parser.parse(text, today)
