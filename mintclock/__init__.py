__version__ = "1.0.0"

from .conf import apply_settings, ConfigError, Settings, SettingValidationError
from .signals import RawTimeSignal, SignalKind
from .time_text_parser import (
    TimeTextParser,
    ParsedTime,
    ParseKind,
    parse_time_text,
    time_text_parser,
)
from .resolver import (
    EventBundle,
    EventResolver,
    ResolvedEvent,
    ExclusionReason,
    RowExclusion,
    ParseFailure,
    PastEvent,
    OutOfWindow,
)
from .rounding import HourRounder
from .dedup import Deduplicator, canonical_key, normalize_project
from .pipeline import MintPipeline, PipelineResult


@apply_settings
def resolve_events(bundles, scraped_at=None, settings=None):
    """Resolve collector bundles into the ordered list of today's mint events.

    :param bundles:
        Iterable of :class:`EventBundle` or of dicts in the collector's input
        shape (``project``, ``rawTimeSignals``, ``scrapedAt``).

    :param scraped_at:
        Epoch seconds applied to every bundle, so that one run is evaluated
        against a single reference instant. When omitted each bundle's own
        ``scrapedAt`` is used.

    :param settings:
        Configure resolution using settings defined in :mod:`mintclock.conf.Settings`.
    :type settings: dict

    :return: included events, rounded and de-duplicated, in input order.
    :rtype: list of :class:`ResolvedEvent`

    :raises:
        ``SettingValidationError``: A provided setting is not valid.
        ``ValueError``: A bundle dict is malformed.
    """
    bundles = [
        bundle if isinstance(bundle, EventBundle) else EventBundle.from_dict(bundle)
        for bundle in bundles
    ]
    return MintPipeline(settings=settings).run(bundles, scraped_at=scraped_at).events
