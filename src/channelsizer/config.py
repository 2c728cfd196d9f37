"""CONSTANTS & LOOKUPS
"""
from types import MappingProxyType
from collections import namedtuple

SurfaceType = namedtuple("SurfaceType", ["id", "name", "coefficient"])
ChannelMaterial = namedtuple("ChannelMaterial", ["id", "name", "manning_n"])
UChannelSize = namedtuple("UChannelSize", ["size", "label"])

# ------------------------------------------------------------------------------
# Rational Method runoff coefficients, by surface type

SURFACE_TYPES = MappingProxyType({s.id: s for s in [
    SurfaceType("undrain", "Undrained", 1.0),
    SurfaceType("asphalt", "Asphalt/Concrete", 0.90),
    SurfaceType("roof", "Roofs", 0.85),
    SurfaceType("gravel", "Gravel", 0.35),
    SurfaceType("lawn", "Lawn/Grass", 0.20),
    SurfaceType("lawn_steep", "Lawn/Grass (Steep)", 0.25),
    SurfaceType("forest", "Forest", 0.10),
    SurfaceType("bare_soil", "Bare Soil", 0.30),
    SurfaceType("cultivated", "Cultivated Land", 0.35),
    SurfaceType("pasture", "Pasture/Range", 0.20),
    SurfaceType("desert", "Desert/Barren", 0.70),
]})

# used when a surface type isn't in the table (fully impervious)
DEFAULT_RUNOFF_COEFFICIENT = 1.0

# ------------------------------------------------------------------------------
# Manning's roughness coefficients, by channel lining

CHANNEL_MATERIALS = MappingProxyType({m.id: m for m in [
    ChannelMaterial("concrete", "Concrete", 0.013),
    ChannelMaterial("asphalt", "Asphalt", 0.016),
    ChannelMaterial("brick", "Brick", 0.015),
    ChannelMaterial("stone", "Stone", 0.025),
    ChannelMaterial("earth", "Earth", 0.025),
    ChannelMaterial("grass", "Grass", 0.035),
    ChannelMaterial("gravel", "Gravel", 0.030),
    ChannelMaterial("riprap", "Riprap", 0.040),
]})

DEFAULT_MANNING_N = 0.013

# ------------------------------------------------------------------------------
# Channel shapes

TRAPEZOIDAL = "trapezoidal"
U_CHANNEL = "u-channel"
CHANNEL_SHAPES = (TRAPEZOIDAL, U_CHANNEL)

CHANNEL_SHAPE_CROSSWALK = MappingProxyType({
    "trapezoidal": TRAPEZOIDAL,
    "trapezoid": TRAPEZOIDAL,
    "u-channel": U_CHANNEL,
    "u_channel": U_CHANNEL,
    "uchannel": U_CHANNEL,
    "u channel": U_CHANNEL,
})

# standard precast U-channel sizes, ascending (mm)
U_CHANNEL_SIZES = tuple(UChannelSize(s, f"{s}mm") for s in [
    100, 150, 225, 250, 300, 375, 450, 525, 600
])

# ------------------------------------------------------------------------------
# Design parameters

# time of concentration (DSD Stormwater Drainage Manual)
TC_CONSTANT = 0.14465
TC_SLOPE_EXPONENT = 0.2
TC_AREA_EXPONENT = 0.1
TC_MINIMUM_MIN = 5.0
UPSTREAM_TC_PLACEHOLDER_MIN = 15.0

# rainfall intensity used when the IDF curve is off or unavailable (mm/hr)
FALLBACK_RAINFALL_INTENSITY = 100.0

# trapezoidal channels: fixed bottom width (m) and side slope (H:V)
TRAPEZOID_BOTTOM_WIDTH = 0.5
TRAPEZOID_SIDE_SLOPE = 2.0
TRAPEZOID_DEPTH_BOUNDS = (0.01, 2.0)
TRAPEZOID_WIDTH_INCREMENT = 0.5

# U-channels: bisection bounds on width (m)
U_CHANNEL_WIDTH_BOUNDS = (0.1, 2.0)

BISECTION_ITERATIONS = 50
BISECTION_TOLERANCE = 0.001

# design criteria
MIN_FLOW_RATIO = 0.95
MIN_VELOCITY = 0.3
MAX_VELOCITY = 4.0

STATUS_OK = "OK"
STATUS_NOT_OK = "Not OK"
NOT_AVAILABLE = "N/A"

# climate change uplift on IDF intensities (+28.1%)
CLIMATE_CHANGE_FACTOR = 1.281

RETURN_PERIODS = (2, 5, 10, 20, 50, 100, 200, 500, 1000)
