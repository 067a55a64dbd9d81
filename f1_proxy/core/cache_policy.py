"""Caching strategy.

Upstream F1 data ages very differently: a finished season never changes, the
current season changes after every race weekend, lap and pit data move during
a race. Requests are classified into a volatility class and the class decides
how long the response is cached.
"""
import json
import re
from collections.abc import Mapping
from datetime import date
from enum import Enum

import structlog

logger = structlog.get_logger(__name__)


class VolatilityClass(str, Enum):
    HISTORICAL = "historical"
    CURRENT_SEASON = "current_season"
    LIVE_RACE = "live_race"
    DEFAULT = "default"


# Cache TTLs (seconds)
DEFAULT_TTLS: dict[VolatilityClass, int] = {
    VolatilityClass.HISTORICAL: 24 * 60 * 60,   # Finished seasons
    VolatilityClass.CURRENT_SEASON: 60 * 60,    # Updates after each round
    VolatilityClass.LIVE_RACE: 5 * 60,          # Laps / pit stops
    VolatilityClass.DEFAULT: 5 * 60,
}

_YEAR = re.compile(r"\d{4}", re.ASCII)
_YEAR_IN_PATH = re.compile(r"/(\d{4})(?:/|$|\.)", re.ASCII)
_LIVE_SEGMENTS = ("/laps/", "/pitstops/")


def _request_year(endpoint: str, params: Mapping[str, str]) -> int | None:
    year = params.get("year")
    if year is not None and _YEAR.fullmatch(str(year)):
        return int(year)
    match = _YEAR_IN_PATH.search(endpoint)
    return int(match.group(1)) if match else None


def _is_live_shaped(endpoint: str) -> bool:
    path = endpoint if endpoint.endswith("/") else endpoint + "/"
    return any(segment in path for segment in _LIVE_SEGMENTS)


def classify(
    endpoint: str,
    params: Mapping[str, str] | None = None,
    today: date | None = None,
) -> VolatilityClass:
    """Assign a volatility class to a request.

    First match wins: the ``current`` season token, then historical years,
    then lap/pit-stop data, then an explicit current-year request, then
    default. ``today`` is read on every call so the answer follows the
    calendar across a year boundary.
    """
    params = params or {}
    current_year = (today or date.today()).year

    if params.get("year") == "current" or "/current/" in endpoint:
        return VolatilityClass.CURRENT_SEASON

    year = _request_year(endpoint, params)
    if year is not None and year < current_year:
        return VolatilityClass.HISTORICAL

    # Laps and pit stops of this season may still be changing mid-race.
    if _is_live_shaped(endpoint):
        return VolatilityClass.LIVE_RACE

    if year == current_year:
        return VolatilityClass.CURRENT_SEASON

    return VolatilityClass.DEFAULT


def resolve_ttl(
    volatility: VolatilityClass,
    overrides: Mapping[str, int] | None = None,
) -> int:
    """Cache lifetime in seconds for a volatility class.

    A configured override wins over the built-in default unless it is not a
    positive number, in which case the default is used.
    """
    volatility = VolatilityClass(volatility)
    default = DEFAULT_TTLS[volatility]
    overrides = {VolatilityClass(k): v for k, v in (overrides or {}).items()}
    if volatility not in overrides:
        return default

    override = overrides[volatility]
    if isinstance(override, bool) or not isinstance(override, int) or override <= 0:
        logger.warning(
            "invalid_ttl_override",
            volatility=volatility.value,
            override=override,
            fallback=default,
        )
        return default
    return override


def request_signature(
    endpoint: str,
    path_params: Mapping[str, str] | None = None,
    query_params: Mapping[str, str] | None = None,
) -> str:
    """Deterministic cache key for a request.

    Keys are sorted and ``None`` values dropped, so arrival order of query
    parameters never changes the signature.
    """
    def clean(params: Mapping[str, str] | None) -> dict[str, str]:
        return {k: v for k, v in (params or {}).items() if v is not None}

    return json.dumps(
        [endpoint, clean(path_params), clean(query_params)],
        sort_keys=True,
        separators=(",", ":"),
    )
