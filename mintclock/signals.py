"""
Raw time signals observed for one candidate mint event.

A collector may see the same event time in several places on a page: an
element attribute, a hover tooltip and a relative badge ("5H", "2H ago").
Each observation becomes one RawTimeSignal; the resolver decides which one
to trust.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class SignalKind(Enum):
    """Where a time text was observed on the page."""
    ABSOLUTE_ATTRIBUTE = "absolute-attribute"   # datetime/title attribute
    ABSOLUTE_TOOLTIP = "absolute-tooltip"       # hover popover text
    RELATIVE_AHEAD = "relative-ahead"           # "5H", "in 30M"
    RELATIVE_AGO = "relative-ago"               # "2H ago"
    UNPARSEABLE = "unparseable"                 # collector could not classify it


@dataclass(frozen=True)
class RawTimeSignal:
    kind: SignalKind
    text: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RawTimeSignal":
        try:
            kind = SignalKind(data["kind"])
        except KeyError:
            raise ValueError("Time signal is missing its kind: %r" % (data,))
        except ValueError:
            raise ValueError("Unknown time signal kind: %r" % (data["kind"],))
        return cls(kind=kind, text=str(data.get("text") or ""))

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "text": self.text}
