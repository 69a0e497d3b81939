"""
Resolution pipeline: bundles -> resolver -> rounder -> deduplicator.

One pass evaluates every bundle against the same reference instant when a
``scraped_at`` override is supplied, and emits records in input order.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional

from .conf import apply_settings
from .dedup import Deduplicator
from .resolver import EventBundle, EventResolver, ResolvedEvent
from .rounding import HourRounder

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    events: List[ResolvedEvent] = field(default_factory=list)     # included, deduplicated
    excluded: List[ResolvedEvent] = field(default_factory=list)
    collisions: int = 0

    def counts_by_reason(self):
        counts = {}
        for event in self.excluded:
            reason = event.exclusion_reason.value
            counts[reason] = counts.get(reason, 0) + 1
        return counts


class MintPipeline:

    @apply_settings
    def __init__(self, settings=None):
        self._settings = settings
        self.resolver = EventResolver(settings=settings)
        self.rounder = HourRounder(settings.ROUNDING_GRID)
        self.deduplicator = Deduplicator()

    def resolve_one(self, bundle: EventBundle) -> ResolvedEvent:
        event = self.resolver.resolve(bundle)
        if event.event_utc is None:
            return event
        return replace(event, event_utc_rounded=self.rounder.round(event.event_utc))

    def run(self, bundles: Iterable[EventBundle], scraped_at: Optional[int] = None) -> PipelineResult:
        result = PipelineResult()
        included = []

        for bundle in bundles:
            if scraped_at is not None:
                bundle = bundle.at(scraped_at)
            event = self.resolve_one(bundle)
            if event.included:
                included.append(event)
            else:
                result.excluded.append(event)

        result.events = self.deduplicator.deduplicate(included)
        result.collisions = self.deduplicator.collisions

        if result.collisions:
            logger.warning(
                f"{result.collisions} duplicate event(s) dropped on (project, rounded time)"
            )
        logger.debug(
            f"Pipeline kept {len(result.events)} event(s), "
            f"excluded {len(result.excluded)}: {result.counts_by_reason()}"
        )
        return result
