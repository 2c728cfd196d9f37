"""Channel capacity (Manning's equation) and channel sizing.

Manning's equation for open channel flow:

    Q = (1/n) * A * R^(2/3) * S^(1/2)

where Q is flow (m^3/s), n is the roughness coefficient, A is the flow area
(m^2), R the hydraulic radius (m) and S the longitudinal gradient (m/m).
"""
import math
import logging
from dataclasses import dataclass
from typing import Callable, Tuple

from ..config import (
    CHANNEL_MATERIALS,
    DEFAULT_MANNING_N,
    TRAPEZOIDAL,
    U_CHANNEL,
    U_CHANNEL_SIZES,
    TRAPEZOID_BOTTOM_WIDTH,
    TRAPEZOID_SIDE_SLOPE,
    TRAPEZOID_DEPTH_BOUNDS,
    TRAPEZOID_WIDTH_INCREMENT,
    U_CHANNEL_WIDTH_BOUNDS,
    BISECTION_ITERATIONS,
    BISECTION_TOLERANCE,
)
from ..exceptions import SizingError
from .geometry import Geometry, trapezoid_geometry, u_channel_full_geometry

logger = logging.getLogger(__name__)


def manning_roughness(material) -> float:
    """Manning's n for a channel material; unknown materials get 0.013"""
    m = CHANNEL_MATERIALS.get(material)
    if m is None:
        logger.debug("unknown channel material %r, using n=%s", material, DEFAULT_MANNING_N)
        return DEFAULT_MANNING_N
    return m.manning_n


def manning_flow(geometry: Geometry, gradient, roughness) -> float:
    """Flow capacity of a section, m^3/s

    :param geometry: section geometry at the flow depth of interest
    :type geometry: Geometry
    :param gradient: channel longitudinal gradient, m/m
    :type gradient: float
    :param roughness: Manning's n
    :type roughness: float
    :return: flow, cubic meters / second
    :rtype: float
    """
    return (1 / roughness) * geometry.area * math.pow(geometry.hydraulic_radius, 2 / 3) * math.sqrt(gradient)


@dataclass
class BisectionResult:
    root: float
    iterations: int
    # True when the flow tolerance was met before the last iteration
    converged: bool


def bisect_for_target(
    evaluate: Callable[[float], float],
    target,
    lower,
    upper,
    iterations=BISECTION_ITERATIONS,
    tolerance=BISECTION_TOLERANCE
    ) -> BisectionResult:
    """Find x in [lower, upper] where evaluate(x) == target, for a monotone
    increasing evaluate function.

    Runs a fixed number of halvings. Stops early only if a trial value lands
    within `tolerance` of the target; otherwise the midpoint of the final
    bracket is returned.
    """
    lo, hi = lower, upper
    for i in range(iterations):
        mid = (lo + hi) / 2
        value = evaluate(mid)
        if abs(value - target) < tolerance:
            return BisectionResult(root=mid, iterations=i + 1, converged=True)
        elif value < target:
            lo = mid
        else:
            hi = mid
    return BisectionResult(root=(lo + hi) / 2, iterations=iterations, converged=False)


@dataclass
class ChannelSizing:
    """Result of sizing one channel"""

    # theoretical (continuous) width, meters
    required_width: float
    # realized width after rounding or catalog selection, meters
    selected_width: float
    # display label for the realized width
    selected_size: str
    # theoretical flow depth (trapezoidal) or width (U-channel) from the solver, meters
    solved_dimension: float
    iterations: int = 0


def _check_sizing_inputs(peak_flow, gradient, roughness):
    if peak_flow is None or not math.isfinite(peak_flow) or peak_flow <= 0:
        raise SizingError(f"Peak flow must be a positive number to size a channel ({peak_flow})")
    if gradient is None or not math.isfinite(gradient) or gradient <= 0:
        raise SizingError(f"Channel gradient must be greater than 0 ({gradient})")
    if roughness is None or not math.isfinite(roughness) or roughness <= 0:
        raise SizingError(f"Manning's n must be greater than 0 ({roughness})")


def trapezoid_depth_for_top_width(top_width, bottom_width=TRAPEZOID_BOTTOM_WIDTH, side_slope=TRAPEZOID_SIDE_SLOPE):
    return (top_width - bottom_width) / (2 * side_slope)


def size_trapezoidal_channel(peak_flow, gradient, roughness) -> ChannelSizing:
    """Size a trapezoidal channel (0.5 m bottom, 2H:1V sides) for a peak flow.

    Solves for the flow depth, derives the top width, and rounds the top
    width up to the next 0.5 m.
    """
    _check_sizing_inputs(peak_flow, gradient, roughness)

    def flow_at_depth(depth):
        g = trapezoid_geometry(depth, TRAPEZOID_BOTTOM_WIDTH, TRAPEZOID_SIDE_SLOPE)
        return manning_flow(g, gradient, roughness)

    result = bisect_for_target(flow_at_depth, peak_flow, *TRAPEZOID_DEPTH_BOUNDS)
    depth = result.root

    top_width = TRAPEZOID_BOTTOM_WIDTH + 2 * TRAPEZOID_SIDE_SLOPE * depth
    # round up to the nearest increment
    selected_width = math.ceil(top_width / TRAPEZOID_WIDTH_INCREMENT) * TRAPEZOID_WIDTH_INCREMENT

    return ChannelSizing(
        required_width=top_width,
        selected_width=selected_width,
        selected_size=f"{selected_width:.1f}m",
        solved_dimension=depth,
        iterations=result.iterations
    )


def u_channel_capacity(channel_width, gradient, roughness) -> float:
    """capacity of a U-channel flowing rim-full, m^3/s"""
    return manning_flow(u_channel_full_geometry(channel_width), gradient, roughness)


def size_u_channel(peak_flow, gradient, roughness) -> ChannelSizing:
    """Size a U-channel for a peak flow.

    The theoretical width comes from bisection; the selected size is the
    smallest standard size whose rim-full capacity meets the peak flow. When
    none does, the largest standard size is returned and the shortfall is
    left for the design check to report.
    """
    _check_sizing_inputs(peak_flow, gradient, roughness)

    result = bisect_for_target(
        lambda width: u_channel_capacity(width, gradient, roughness),
        peak_flow,
        *U_CHANNEL_WIDTH_BOUNDS
    )

    selected = U_CHANNEL_SIZES[-1]
    for channel in U_CHANNEL_SIZES:
        if u_channel_capacity(channel.size / 1000, gradient, roughness) >= peak_flow:
            selected = channel
            break
    else:
        logger.info(
            "peak flow %.3f m3/s exceeds the largest U-channel; falling back to %s",
            peak_flow, selected.label
        )

    return ChannelSizing(
        required_width=result.root,
        selected_width=selected.size / 1000,
        selected_size=selected.label,
        solved_dimension=result.root,
        iterations=result.iterations
    )


def size_channel(peak_flow, channel_shape, gradient, roughness) -> ChannelSizing:
    if channel_shape == TRAPEZOIDAL:
        return size_trapezoidal_channel(peak_flow, gradient, roughness)
    elif channel_shape == U_CHANNEL:
        return size_u_channel(peak_flow, gradient, roughness)
    raise SizingError(f"Unknown channel shape '{channel_shape}'")


def selected_geometry(sizing: ChannelSizing, channel_shape) -> Geometry:
    """geometry of the realized (selected) channel"""
    if channel_shape == TRAPEZOIDAL:
        depth = trapezoid_depth_for_top_width(sizing.selected_width)
        return trapezoid_geometry(depth, TRAPEZOID_BOTTOM_WIDTH, TRAPEZOID_SIDE_SLOPE)
    elif channel_shape == U_CHANNEL:
        return u_channel_full_geometry(sizing.selected_width)
    raise SizingError(f"Unknown channel shape '{channel_shape}'")


def selected_capacity(sizing: ChannelSizing, channel_shape, gradient, roughness) -> Tuple[float, float]:
    """Flow capacity and velocity of the selected channel.

    :return: a tuple of calculated flow (m^3/s) and velocity (m/s)
    :rtype: tuple[float, float]
    """
    g = selected_geometry(sizing, channel_shape)
    if g.area <= 0:
        raise SizingError(f"Selected channel {sizing.selected_size} has no flow area")
    calculated_flow = manning_flow(g, gradient, roughness)
    return calculated_flow, calculated_flow / g.area
