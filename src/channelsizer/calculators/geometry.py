import math
from dataclasses import dataclass
from typing import Optional

from ..exceptions import InvalidInputError


@dataclass
class Geometry:
    """Cross-section properties of a channel flowing at a given depth.
    """

    # flow area (square meters)
    area: float
    # wetted perimeter (meters)
    wetted_perimeter: float
    # area / wetted perimeter (meters)
    hydraulic_radius: float
    # width of the water surface (meters)
    top_width: Optional[float] = None


def _check_non_negative(**kwargs):
    for name, value in kwargs.items():
        if value is None or not math.isfinite(value):
            raise InvalidInputError(f"{name} must be a finite number ({value})")
        if value < 0:
            raise InvalidInputError(f"{name} must be non-negative ({value})")


def hydraulic_radius(area, perimeter) -> float:
    """R = A / P

    :param area: cross-sectional flow area, square meters
    :type area: float
    :param perimeter: wetted perimeter, meters
    :type perimeter: float
    :return: hydraulic radius, meters
    :rtype: float
    """
    if area < 0:
        raise InvalidInputError(f"area must be non-negative ({area})")
    if perimeter <= 0:
        raise InvalidInputError(f"perimeter must be positive ({perimeter})")
    return area / perimeter


def trapezoid_geometry(depth, bottom_width, side_slope) -> Geometry:
    """Compute area, wetted perimeter and hydraulic radius of a trapezoidal
    channel.

    * top width: T = b + 2zy
    * area: A = y(b + zy)
    * wetted perimeter: P = b + 2y * sqrt(1 + z^2)

    A depth of 0 is allowed and returns a zero-area section.

    :param depth: flow depth (y), meters
    :type depth: float
    :param bottom_width: bottom width (b), meters
    :type bottom_width: float
    :param side_slope: side slope (z) as horizontal:vertical, e.g. 2.0 for 2H:1V
    :type side_slope: float
    :return: the section geometry
    :rtype: Geometry
    """
    _check_non_negative(depth=depth, bottom_width=bottom_width, side_slope=side_slope)

    area = depth * (bottom_width + side_slope * depth)
    perimeter = bottom_width + 2 * depth * math.sqrt(1 + side_slope ** 2)
    # a zero-width, zero-depth section has no perimeter to divide by
    radius = hydraulic_radius(area, perimeter) if perimeter > 0 else 0.0

    return Geometry(
        area=area,
        wetted_perimeter=perimeter,
        hydraulic_radius=radius,
        top_width=bottom_width + 2 * side_slope * depth
    )


def u_channel_geometry(flow_depth, channel_width, radius) -> Geometry:
    """Compute area, wetted perimeter and hydraulic radius of a U-channel: a
    semicircular invert of `radius` topped by vertical sides.

    The hydraulic section is the part of the flow inside the semicircular
    invert; depth above the rim is carried as freeboard. Sized U-channels are
    always evaluated with `flow_depth == channel_width` and
    `radius == channel_width / 2`, which gives the full semicircle:

    * area: A = pi * r^2 / 2
    * wetted perimeter: P = pi * r
    * hydraulic radius: R = r / 2

    Below the rim (flow_depth < radius) the circular-segment formulas apply.

    :param flow_depth: depth of flow above the invert, meters
    :type flow_depth: float
    :param channel_width: internal width of the channel, meters
    :type channel_width: float
    :param radius: radius of the semicircular invert, meters
    :type radius: float
    :return: the section geometry
    :rtype: Geometry
    """
    _check_non_negative(flow_depth=flow_depth, channel_width=channel_width)
    if radius is None or not math.isfinite(radius) or radius <= 0:
        raise InvalidInputError(f"radius must be positive ({radius})")

    y = min(flow_depth, radius)

    if y >= radius:
        area = 0.5 * math.pi * radius ** 2
        perimeter = math.pi * radius
        top_width = 2 * radius
    else:
        theta = 2 * math.acos((radius - y) / radius)
        area = radius ** 2 * (theta - math.sin(theta)) / 2
        perimeter = radius * theta
        top_width = 2 * math.sqrt(y * (2 * radius - y))

    radius_h = hydraulic_radius(area, perimeter) if perimeter > 0 else 0.0

    return Geometry(
        area=area,
        wetted_perimeter=perimeter,
        hydraulic_radius=radius_h,
        top_width=top_width
    )


def u_channel_full_geometry(channel_width) -> Geometry:
    """geometry of a U-channel at its design (rim-full) condition"""
    return u_channel_geometry(channel_width, channel_width, channel_width / 2)
