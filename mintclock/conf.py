from functools import wraps

from .signals import SignalKind
from .utils import get_timezone_from_tz_string

WINDOW_MODES = ("calendar-day", "rolling")
ROUNDING_GRIDS = ("hour", "half-hour")

DEFAULT_SETTINGS = {
    "TIMEZONE": "UTC",
    "WINDOW_MODE": "calendar-day",
    "WINDOW_HOURS": 24,
    "ROUNDING_GRID": "hour",
    "SIGNAL_PRIORITY": [
        SignalKind.ABSOLUTE_ATTRIBUTE.value,
        SignalKind.ABSOLUTE_TOOLTIP.value,
        SignalKind.RELATIVE_AHEAD.value,
        SignalKind.RELATIVE_AGO.value,
    ],
    "PAST_TOLERANCE_SECONDS": 300,
}

# Option names used by collectors and config files
OPTION_ALIASES = {
    "timezone": "TIMEZONE",
    "windowMode": "WINDOW_MODE",
    "windowHours": "WINDOW_HOURS",
    "roundingGrid": "ROUNDING_GRID",
    "signalPriority": "SIGNAL_PRIORITY",
    "pastToleranceSeconds": "PAST_TOLERANCE_SECONDS",
}


class SettingValidationError(ValueError):
    pass


ConfigError = SettingValidationError


def _normalize_keys(mod_settings):
    return {OPTION_ALIASES.get(key, key): value for key, value in mod_settings.items()}


class Settings:
    """Control and configure the resolution pipeline.

    Settings are validated when they are built, so an invalid timezone or
    window length surfaces before any row is processed.

    * `TIMEZONE`: IANA identifier whose midnight bounds the calendar day,
      or ``local`` for the host zone.
    * `WINDOW_MODE`: ``calendar-day`` or ``rolling``.
    * `WINDOW_HOURS`: rolling window length, positive integer.
    * `ROUNDING_GRID`: ``hour`` or ``half-hour``.
    * `SIGNAL_PRIORITY`: ordered list of signal kinds consulted by the resolver.
    * `PAST_TOLERANCE_SECONDS`: how far before the scrape instant an
      absolute signal may land and still count as upcoming.
    """

    _default = True

    def __init__(self, settings=None):
        self._mod_settings = {}
        self._updateall(DEFAULT_SETTINGS.items())
        if settings:
            self._default = False
            self._mod_settings = _normalize_keys(settings)
            self._updateall(self._mod_settings.items())
        check_settings(self)

    def _updateall(self, iterable):
        for key, value in iterable:
            if isinstance(value, list):
                value = list(value)
            setattr(self, key, value)

    def replace(self, mod_settings=None, **kwds):
        merged = dict(self._mod_settings)
        merged.update(_normalize_keys(mod_settings or {}))
        merged.update(_normalize_keys(kwds))
        return self.__class__(settings=merged)

    def as_dict(self):
        return {key: getattr(self, key) for key in DEFAULT_SETTINGS}

    def __repr__(self):
        return "Settings(%r)" % self.as_dict()


def apply_settings(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        mod_settings = kwargs.get("settings")

        kwargs["settings"] = mod_settings or settings

        if isinstance(kwargs["settings"], dict):
            kwargs["settings"] = settings.replace(mod_settings=mod_settings)

        if not isinstance(kwargs["settings"], Settings):
            raise TypeError(
                "settings can only be either dict or instance of Settings class"
            )

        return f(*args, **kwargs)

    return wrapper


def _check_timezone(setting_name, setting_value):
    try:
        get_timezone_from_tz_string(setting_value)
    except ValueError:
        raise SettingValidationError(
            '"{}" is not a valid value for "{}": unknown timezone'.format(
                setting_value, setting_name
            )
        )


def _check_positive(setting_name, setting_value):
    if setting_value <= 0:
        raise SettingValidationError(
            '"{}" must be positive, got {}'.format(setting_name, setting_value)
        )


def _check_non_negative(setting_name, setting_value):
    if setting_value < 0:
        raise SettingValidationError(
            '"{}" cannot be negative, got {}'.format(setting_name, setting_value)
        )


def _check_signal_priority(setting_name, setting_value):
    known = {kind.value for kind in SignalKind}
    if not setting_value:
        raise SettingValidationError('"{}" cannot be empty'.format(setting_name))
    for item in setting_value:
        if item not in known:
            raise SettingValidationError(
                '"{}" is not a valid signal kind in "{}", it should be one of: {}'.format(
                    item, setting_name, ", ".join(sorted(known))
                )
            )
    if len(set(setting_value)) != len(setting_value):
        raise SettingValidationError(
            'There are repeated values in the "{}" setting'.format(setting_name)
        )


def check_settings(settings):
    """
    Check if provided settings are valid, if not it raises `SettingValidationError`.
    Only checks the modified settings.
    """
    settings_values = {
        "TIMEZONE": {"type": str, "extra_check": _check_timezone},
        "WINDOW_MODE": {"values": WINDOW_MODES, "type": str},
        "WINDOW_HOURS": {"type": int, "extra_check": _check_positive},
        "ROUNDING_GRID": {"values": ROUNDING_GRIDS, "type": str},
        "SIGNAL_PRIORITY": {"type": list, "extra_check": _check_signal_priority},
        "PAST_TOLERANCE_SECONDS": {"type": int, "extra_check": _check_non_negative},
    }

    modified_settings = settings._mod_settings
    for setting_name, setting_value in modified_settings.items():
        if setting_name not in settings_values:
            raise SettingValidationError(
                '"{}" is not a valid setting'.format(setting_name)
            )

        setting_type = type(setting_value)
        setting_props = settings_values[setting_name]

        # check type (bool is an int subclass and never a valid value here)
        if not setting_type == setting_props["type"]:
            raise SettingValidationError(
                '"{}" must be "{}", not "{}".'.format(
                    setting_name, setting_props["type"].__name__, setting_type.__name__
                )
            )

        # check values
        if setting_props.get("values") and setting_value not in setting_props["values"]:
            raise SettingValidationError(
                '"{}" is not a valid value for "{}", it should be: "{}" or "{}"'.format(
                    setting_value,
                    setting_name,
                    '", "'.join(setting_props["values"][:-1]),
                    setting_props["values"][-1],
                )
            )

        # specific checks
        extra_check = setting_props.get("extra_check")
        if extra_check:
            extra_check(setting_name, setting_value)


settings = Settings()
