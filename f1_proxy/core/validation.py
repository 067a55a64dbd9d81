"""Request parameter validation.

Each endpoint kind has a ``Schema`` member mapped to a pydantic model. Path and
query parameters are merged (path wins) and validated in one pass so that
every failing field is reported together.
"""
import re
from collections.abc import Mapping
from enum import Enum
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationError
from pydantic_core import PydanticCustomError

from f1_proxy.core.errors import FieldError, validation_error


def _matches(pattern: str, error_type: str, message: str) -> AfterValidator:
    compiled = re.compile(pattern, re.ASCII)

    def check(value: str) -> str:
        if not compiled.fullmatch(value):
            raise PydanticCustomError(error_type, message)
        return value

    return AfterValidator(check)


def _one_of(choices: tuple[str, ...], error_type: str, message: str) -> AfterValidator:
    def check(value: str) -> str:
        if value not in choices:
            raise PydanticCustomError(error_type, message)
        return value

    return AfterValidator(check)


Year = Annotated[str, _matches(r"\d{4}|current", "year_format", 'Year must be a 4-digit year or "current"')]
Round = Annotated[str, _matches(r"\d+", "round_format", "Round must be a positive integer")]
Lap = Annotated[str, _matches(r"\d+", "lap_format", "Lap must be a positive integer")]
DriverId = Annotated[str, _matches(r".+", "driver_id_empty", "Driver ID cannot be empty")]
ConstructorId = Annotated[
    str, _matches(r".+", "constructor_id_empty", "Constructor ID cannot be empty")
]
STANDING_TYPES = ("drivers", "constructors")
StandingType = Annotated[
    str, _one_of(STANDING_TYPES, "standing_type", 'Type must be "drivers" or "constructors"')
]


class Params(BaseModel):
    """Base for validated parameter sets. Unknown parameters are dropped."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    def echo(self) -> dict[str, str]:
        """Parameters as the client named them, for response metadata."""
        return self.model_dump(by_alias=True, exclude_none=True)


class NoParams(Params):
    pass


class YearParams(Params):
    year: Year


class OptionalYearParams(Params):
    year: Year = "current"


class RoundParams(Params):
    year: Year
    round: Round


class LapTimesParams(Params):
    year: Year
    round: Round
    lap: Optional[Lap] = None


class DriverParams(Params):
    year: Year
    driver_id: DriverId = Field(alias="driverId")


class ConstructorParams(Params):
    year: Year
    constructor_id: ConstructorId = Field(alias="constructorId")


class StandingsParams(Params):
    year: Year
    type: StandingType = "drivers"


class Schema(str, Enum):
    SEASONS = "seasons"
    SEASON = "season"
    RACES = "races"
    RACE = "race"
    DRIVERS = "drivers"
    DRIVER = "driver"
    CONSTRUCTORS = "constructors"
    CONSTRUCTOR = "constructor"
    QUALIFYING = "qualifying"
    LAP_TIMES = "lap_times"
    PIT_STOPS = "pit_stops"
    STANDINGS = "standings"
    RESULTS = "results"


SCHEMAS: dict[Schema, type[Params]] = {
    Schema.SEASONS: NoParams,
    Schema.SEASON: YearParams,
    Schema.RACES: YearParams,
    Schema.RACE: RoundParams,
    Schema.DRIVERS: OptionalYearParams,
    Schema.DRIVER: DriverParams,
    Schema.CONSTRUCTORS: OptionalYearParams,
    Schema.CONSTRUCTOR: ConstructorParams,
    Schema.QUALIFYING: RoundParams,
    Schema.LAP_TIMES: LapTimesParams,
    Schema.PIT_STOPS: RoundParams,
    Schema.STANDINGS: StandingsParams,
    Schema.RESULTS: RoundParams,
}

_unregistered = set(Schema) - set(SCHEMAS)
if _unregistered:
    raise RuntimeError(f"Schemas without a parameter model: {sorted(_unregistered)}")


def merge_params(
    path_params: Mapping[str, str], query_params: Mapping[str, str]
) -> dict[str, str]:
    """Query parameters overlaid with path parameters."""
    return {**dict(query_params), **dict(path_params)}


def _field_name(loc: tuple) -> str:
    return ".".join(str(part) for part in loc) or "params"


def validate_params(schema: Schema, raw: Mapping[str, str]) -> Params:
    """Validate raw parameters against a schema.

    Raises:
        LookupError: the schema is not registered (configuration fault)
        ProxyError: one or more parameters are invalid; ``details`` lists
            every failing field
    """
    try:
        model = SCHEMAS[Schema(schema)]
    except (KeyError, ValueError):
        raise LookupError(f"Unknown validation schema: {schema}") from None

    try:
        return model.model_validate(dict(raw))
    except ValidationError as e:
        details = [
            FieldError(field=_field_name(err["loc"]), message=err["msg"])
            for err in e.errors(include_url=False)
        ]
        raise validation_error(details) from None
