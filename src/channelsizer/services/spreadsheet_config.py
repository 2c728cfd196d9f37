"""CHANNEL TABLE CONSTANTS & LOOKUPS
"""

from ..config import SURFACE_TYPES, CHANNEL_MATERIALS, CHANNEL_SHAPES, U_CHANNEL_SIZES, RETURN_PERIODS
from ..utils import header_key

# input table columns, in template order: (field name, column label)
CHANNEL_TABLE_COLUMNS = [
    ("channel_id", "Channel ID"),
    ("catchment_area", "Catchment Area (m²)"),
    ("average_slope", "Average Slope (m/100m)"),
    ("flow_path_length", "Flow Path Length (m)"),
    ("surface_type", "Surface Type"),
    ("upstream_channel_ids", "Upstream Channel IDs"),
    ("return_period", "Return Period (years)"),
    ("use_idf", "Use IDF"),
    ("channel_shape", "Channel Shape"),
    ("channel_gradient", "Channel Gradient (m/m)"),
    ("channel_material", "Channel Material"),
]

# crosswalk of normalized header text (see utils.header_key) to ChannelInput
# fields. Accepts the template labels, the field names themselves, and the
# camelCase keys used by older web-app exports.
CHANNEL_TABLE_HEADER_XWALK = {}
for f, label in CHANNEL_TABLE_COLUMNS:
    camel = "".join(w if i == 0 else w.capitalize() for i, w in enumerate(f.split("_")))
    CHANNEL_TABLE_HEADER_XWALK[header_key(label)] = f
    CHANNEL_TABLE_HEADER_XWALK[f] = f
    CHANNEL_TABLE_HEADER_XWALK[header_key(camel)] = f

TEMPLATE_SAMPLE_ROWS = [
    ("CH-001", 1000, 5, 200, "asphalt", "", 10, True, "trapezoidal", 0.01, "concrete"),
    ("CH-002", 500, 3, 150, "lawn", "", 10, True, "u-channel", 0.008, "concrete"),
    ("CH-003", 800, 4, 180, "gravel", "CH-001,CH-002", 25, True, "trapezoidal", 0.012, "concrete"),
]

TEMPLATE_DATA_SHEET = "Channel Design Data"
TEMPLATE_REFERENCE_SHEET = "Reference Values"

TEMPLATE_REFERENCE_ROWS = [
    ("Surface Types", "; ".join(f"{s.id} - {s.name} (C={s.coefficient})" for s in SURFACE_TYPES.values())),
    ("Channel Materials", "; ".join(f"{m.id} - {m.name} (n={m.manning_n})" for m in CHANNEL_MATERIALS.values())),
    ("Channel Shapes", "; ".join(CHANNEL_SHAPES)),
    ("Use IDF", "true; false"),
    ("Return Periods", "; ".join(str(rp) for rp in RETURN_PERIODS) + " years"),
    ("U-Channel Sizes", "; ".join(u.label for u in U_CHANNEL_SIZES)),
]

# export: (column label, ChannelResult attribute or callable, decimals)
RESULTS_SHEET = "Channel Design Results"
SUMMARY_SHEET = "Processing Summary"
ERRORS_SHEET = "Errors"
SIZES_SHEET = "Size Distribution"

RESULT_EXPORT_COLUMNS = [
    ("Catchment ID", "channel_id", None),
    ("Time of Concentration (min)", "time_of_concentration", 1),
    ("Peak Flow (m³/s)", "peak_flow", 3),
    ("Peak Flow (L/s)", lambda r: r.peak_flow * 1000, 1),
    ("Required Width (m)", "required_channel_width", 3),
    ("Selected Width (m)", "selected_channel_width", 3),
    ("Selected Size", "selected_channel_size", None),
    ("Calculated Flow (m³/s)", "calculated_flow", 3),
    ("Velocity (m/s)", "velocity", 2),
    ("Design Status", "status", None),
    ("Error/Warning", lambda r: r.error or r.velocity_warning or "", None),
    ("Catchment TC (min)", "catchment_tc", 1),
    ("Upstream TC (min)", "upstream_tc", 1),
    ("Effective TC (min)", "effective_tc", 1),
    ("Rainfall Intensity (mm/hr)", "rainfall_intensity", 1),
    ("Runoff Coefficient", "runoff_coefficient", 2),
    ("Processed", lambda r: "Yes" if r.processed else "No", None),
    ("Processing Error", lambda r: r.processing_error or "", None),
]
