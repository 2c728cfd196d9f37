import math
import inspect
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Union

from ..config import (
    SURFACE_TYPES,
    DEFAULT_RUNOFF_COEFFICIENT,
    TC_CONSTANT,
    TC_SLOPE_EXPONENT,
    TC_AREA_EXPONENT,
    TC_MINIMUM_MIN,
    UPSTREAM_TC_PLACEHOLDER_MIN,
    FALLBACK_RAINFALL_INTENSITY,
)
from ..exceptions import InvalidInputError
from .units import mm_per_hour_to_meters_per_second

logger = logging.getLogger(__name__)


def catchment_time_of_concentration(
    area_sqm,
    slope_per_100m,
    flow_length_m,
    const_a=TC_CONSTANT,
    slope_exponent=TC_SLOPE_EXPONENT,
    area_exponent=TC_AREA_EXPONENT,
    minimum_min=TC_MINIMUM_MIN
    ) -> float:
    """
    Calculate time of concentration (minutes) for a catchment, using the
    DSD Stormwater Drainage Manual formula:

        t = (0.14465 * L) / (H^0.2 * A^0.1)

    Inputs:
        - area_sqm: catchment area, square meters
        - slope_per_100m: average slope of the catchment, m per 100 m
        - flow_length_m: distance along the flow path from the most remote
            point of the catchment to the outlet, meters

    Outputs:
        tc_min: time of concentration, minutes, never less than 5
    """
    for name, value in [("catchment area", area_sqm), ("average slope", slope_per_100m), ("flow path length", flow_length_m)]:
        if not math.isfinite(value) or value <= 0:
            raise InvalidInputError(f"{name} must be greater than 0 ({value})")

    tc_min = (const_a * flow_length_m) / (math.pow(slope_per_100m, slope_exponent) * math.pow(area_sqm, area_exponent))
    return max(tc_min, minimum_min)


def upstream_time_of_concentration(upstream_channel_ids: Union[str, Iterable[str], None]) -> float:
    """Time of concentration contributed by upstream channels, minutes.

    Upstream IDs are not resolved against other records; any upstream
    channel yields a flat 15 minutes.
    """
    if upstream_channel_ids is None:
        return 0.0
    if isinstance(upstream_channel_ids, str):
        has_upstream = bool(upstream_channel_ids.strip())
    else:
        has_upstream = any(str(i).strip() for i in upstream_channel_ids)
    return UPSTREAM_TC_PLACEHOLDER_MIN if has_upstream else 0.0


def effective_time_of_concentration(catchment_tc, upstream_tc) -> float:
    return max(catchment_tc, upstream_tc)


def runoff_coefficient(surface_type) -> float:
    """runoff coefficient (C) for a surface type; unknown types get 1.0"""
    s = SURFACE_TYPES.get(surface_type)
    if s is None:
        logger.debug("unknown surface type %r, using C=%s", surface_type, DEFAULT_RUNOFF_COEFFICIENT)
        return DEFAULT_RUNOFF_COEFFICIENT
    return s.coefficient


def peak_flow_calculator(area_sqm, coefficient, intensity_mm_hr) -> float:
    """Rational Method peak flow, Q = C * i * A

    :param area_sqm: catchment area, square meters
    :type area_sqm: float
    :param coefficient: runoff coefficient, dimensionless
    :type coefficient: float
    :param intensity_mm_hr: rainfall intensity, mm/hr
    :type intensity_mm_hr: float
    :return: peak flow, cubic meters / second (m^3/s)
    :rtype: float
    """
    return coefficient * mm_per_hour_to_meters_per_second(intensity_mm_hr) * area_sqm


# ------------------------------------------------------------------------------
# Rainfall intensity from the IDF collaborator


def _intensity_from_idf_result(result) -> float:
    """pull a usable intensity (mm/hr) out of whatever the IDF collaborator
    returned: an object with `.intensity`, a mapping, or a bare number"""
    if isinstance(result, dict):
        intensity = result.get("intensity")
    elif isinstance(result, (int, float)):
        intensity = result
    else:
        intensity = getattr(result, "intensity", None)

    try:
        intensity = float(intensity)
    except (TypeError, ValueError):
        raise InvalidInputError(f"IDF returned no usable rainfall intensity ({intensity!r})")
    if not math.isfinite(intensity) or intensity <= 0:
        raise InvalidInputError(f"IDF returned an invalid rainfall intensity ({intensity})")
    return intensity


def resolve_rainfall_intensity(
    use_idf,
    return_period,
    duration,
    calculate_idf: Optional[Callable] = None,
    fallback=FALLBACK_RAINFALL_INTENSITY
    ) -> float:
    """Rainfall intensity (mm/hr) for a record.

    With `use_idf` and a collaborator available, the IDF curve is queried
    for the return period at `duration` (without climate adjustment). If the
    collaborator raises, or IDF is off, the fixed fallback intensity is used.
    """
    if not (use_idf and calculate_idf is not None):
        return fallback
    try:
        result = calculate_idf(return_period, duration, False)
    except Exception as e:
        logger.warning("IDF calculation error (%s); using %s mm/hr", e, fallback)
        return fallback
    return _intensity_from_idf_result(result)


async def resolve_rainfall_intensity_async(
    use_idf,
    return_period,
    duration,
    calculate_idf: Optional[Callable] = None,
    fallback=FALLBACK_RAINFALL_INTENSITY
    ) -> float:
    """Same as `resolve_rainfall_intensity`, awaiting the collaborator when it
    returns an awaitable."""
    if not (use_idf and calculate_idf is not None):
        return fallback
    try:
        result = calculate_idf(return_period, duration, False)
        if inspect.isawaitable(result):
            result = await result
    except Exception as e:
        logger.warning("IDF calculation error (%s); using %s mm/hr", e, fallback)
        return fallback
    return _intensity_from_idf_result(result)


@dataclass
class Runoff:
    """Derived hydrology for one channel: times of concentration, rainfall
    and peak flow."""

    catchment_tc: Optional[float] = None
    upstream_tc: Optional[float] = None
    effective_tc: Optional[float] = None
    rainfall_intensity: Optional[float] = None
    runoff_coefficient: Optional[float] = None
    peak_flow: Optional[float] = None

    def calculate_time_of_concentration(self, area_sqm, slope_per_100m, flow_length_m, upstream_channel_ids=None):
        self.catchment_tc = catchment_time_of_concentration(area_sqm, slope_per_100m, flow_length_m)
        self.upstream_tc = upstream_time_of_concentration(upstream_channel_ids)
        self.effective_tc = effective_time_of_concentration(self.catchment_tc, self.upstream_tc)
        return self.effective_tc

    def calculate_peak_flow(self, area_sqm, surface_type, rainfall_intensity):
        self.rainfall_intensity = rainfall_intensity
        self.runoff_coefficient = runoff_coefficient(surface_type)
        self.peak_flow = peak_flow_calculator(area_sqm, self.runoff_coefficient, rainfall_intensity)
        return self.peak_flow

    def calculate(self, record, calculate_idf: Optional[Callable] = None):
        """all hydrology for a ChannelInput record, in order: times of
        concentration, rainfall intensity at the effective TC, peak flow.
        """
        self.calculate_time_of_concentration(
            record.catchment_area,
            record.average_slope,
            record.flow_path_length,
            record.upstream_channel_ids
        )
        intensity = resolve_rainfall_intensity(
            record.use_idf,
            record.return_period,
            self.effective_tc,
            calculate_idf
        )
        self.calculate_peak_flow(record.catchment_area, record.surface_type, intensity)
        return self
