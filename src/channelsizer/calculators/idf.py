"""Rainfall Intensity-Duration-Frequency (IDF) curves.

Hong Kong IDF relationship (GEO Technical Guidance Note No. 30, 2023):

    i = a / (t + b)^c

where i is intensity (mm/hr), t is duration (minutes) and a, b, c are
constants for a given return period. Permanent works take a +28.1% climate
change uplift on top of that.

The batch engine only ever sees this module through a callable with the
signature `(return_period, duration, apply_climate_adjustment) -> result`
where `result.intensity` is in mm/hr; `IdfCalculator` is the default one.
"""
import json
import logging
from dataclasses import dataclass, field
from importlib import resources
from typing import List, Optional

from marshmallow import EXCLUDE
from marshmallow_dataclass import class_schema

from ..config import CLIMATE_CHANGE_FACTOR
from ..exceptions import IdfLookupError
from .units import mm_per_hour_to_meters_per_second

logger = logging.getLogger(__name__)

DEFAULT_IDF_CONSTANTS = "idf_constants_hk.json"


@dataclass
class IdfConstants:
    """IDF curve constants for a single return period"""

    return_period: int = field(metadata=dict(data_key="RP", required=True))
    a: float = field(metadata=dict(required=True))
    b: float = field(metadata=dict(required=True))
    c: float = field(metadata=dict(required=True))

    class Meta:
        unknown = EXCLUDE

IdfConstantsSchema = class_schema(IdfConstants)


@dataclass
class IdfResult:

    # design intensity, mm/hr (after any climate adjustment)
    intensity: float
    # design intensity, m/s
    intensity_si: float
    # intensity straight off the curve, mm/hr
    raw_intensity: float
    constants: IdfConstants
    duration: float
    return_period: int
    climate_change_applied: bool
    formula: str


def load_idf_constants(filepath=None) -> List[IdfConstants]:
    """Read IDF constants from a JSON file shaped like

        {"idf_constants": [{"RP": 2, "a": 570, "b": 5, "c": 0.44}, ...]}

    Without a filepath, the Hong Kong constants bundled with the package are
    used.
    """
    if filepath:
        with open(filepath) as fp:
            data = json.load(fp)
    else:
        data = json.loads(
            resources.files("channelsizer").joinpath("data").joinpath(DEFAULT_IDF_CONSTANTS).read_text()
        )
    constants = IdfConstantsSchema(many=True).load(data["idf_constants"])
    logger.debug("loaded IDF constants for return periods %s", [c.return_period for c in constants])
    return constants


def calculate_idf(
    return_period,
    duration,
    apply_climate_adjustment=False,
    constants: Optional[List[IdfConstants]] = None
    ) -> IdfResult:
    """Calculate rainfall intensity for a return period and storm duration.

    :param return_period: return period, years
    :type return_period: int
    :param duration: storm duration (normally the time of concentration), minutes
    :type duration: float
    :param apply_climate_adjustment: apply the +28.1% climate change uplift, defaults to False
    :type apply_climate_adjustment: bool, optional
    :param constants: IDF constants table, defaults to the bundled table
    :type constants: List[IdfConstants], optional
    :raises IdfLookupError: when the table has no row for the return period
    :return: intensity and the values used to derive it
    :rtype: IdfResult
    """
    if constants is None:
        constants = load_idf_constants()

    matches = [c for c in constants if c.return_period == return_period]
    if not matches:
        raise IdfLookupError(f"No IDF constants found for return period {return_period} years")
    k = matches[0]

    raw_intensity = k.a / (duration + k.b) ** k.c
    intensity = raw_intensity * CLIMATE_CHANGE_FACTOR if apply_climate_adjustment else raw_intensity

    return IdfResult(
        intensity=intensity,
        intensity_si=mm_per_hour_to_meters_per_second(intensity),
        raw_intensity=raw_intensity,
        constants=k,
        duration=duration,
        return_period=return_period,
        climate_change_applied=bool(apply_climate_adjustment),
        formula=f"i = {k.a:g} / ({duration:g} + {k.b:g})^{k.c:g}"
    )


class IdfCalculator:
    """IDF lookup bound to one table of constants. Instances are callables
    that can be handed to the batch engine as its IDF collaborator.
    """

    def __init__(self, constants: Optional[List[IdfConstants]] = None, filepath=None):
        self.constants = constants if constants is not None else load_idf_constants(filepath)

    def __call__(self, return_period, duration, apply_climate_adjustment=False) -> IdfResult:
        return calculate_idf(return_period, duration, apply_climate_adjustment, constants=self.constants)

    @property
    def return_periods(self) -> List[int]:
        return sorted(c.return_period for c in self.constants)
