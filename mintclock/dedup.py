import logging
import unicodedata
from typing import Iterable, List, Optional, Tuple

import regex as re

logger = logging.getLogger(__name__)

RE_SPACES = re.compile(r"\s+")


def normalize_project(name):
    name = unicodedata.normalize("NFKC", name or "")
    return RE_SPACES.sub(" ", name).strip().casefold()


def canonical_key(event) -> Tuple[str, Optional[int]]:
    return normalize_project(event.project), event.event_utc_rounded


class Deduplicator:
    """Keep the first record of each (project, rounded time) pair.

    Later duplicates are dropped without merging any of their fields.
    `collisions` counts the drops of the most recent call.
    """

    def __init__(self):
        self.collisions = 0

    def deduplicate(self, events: Iterable) -> List:
        seen = set()
        unique = []
        self.collisions = 0

        for event in events:
            key = canonical_key(event)
            if key in seen:
                self.collisions += 1
                logger.debug(f"Dropping duplicate of {key!r}: {event!r}")
                continue
            seen.add(key)
            unique.append(event)

        return unique
