"""Snap resolved instants onto the display grid."""

from datetime import timedelta

from .conf import ROUNDING_GRIDS
from .utils import to_epoch, to_utc_datetime

# minutes past the hour -> minutes of the rounded boundary (60 is the next hour)
GRID_THRESHOLDS = {
    "hour": ((30, 0), (59, 60)),
    "half-hour": ((15, 0), (45, 30), (59, 60)),
}


class HourRounder:
    """Round epoch-second instants to the top of the hour or the half hour.

    Seconds are truncated first; a minute exactly on a threshold rounds down,
    so 14:30 becomes 14:00 on the hour grid and 14:15 becomes 14:00 on the
    half-hour grid.
    """

    def __init__(self, grid="hour"):
        if grid not in ROUNDING_GRIDS:
            raise ValueError("Invalid rounding grid: {}".format(grid))
        self.grid = grid
        self._thresholds = GRID_THRESHOLDS[grid]

    def round(self, instant):
        if instant is None:
            return None
        dt = to_utc_datetime(instant).replace(second=0, microsecond=0)
        top_of_hour = dt.replace(minute=0)
        for upper, boundary in self._thresholds:
            if dt.minute <= upper:
                break
        return to_epoch(top_of_hour + timedelta(minutes=boundary))

    def is_aligned(self, instant):
        return instant is not None and self.round(instant) == instant

    def __repr__(self):
        return "HourRounder(grid=%r)" % self.grid
