from typing import List, Optional
from dataclasses import dataclass, field, fields
from marshmallow import EXCLUDE, pre_load, validates, ValidationError
from marshmallow.validate import Range, Length, OneOf
from marshmallow_dataclass import class_schema

from .config import (
    SURFACE_TYPES,
    CHANNEL_MATERIALS,
    CHANNEL_SHAPES,
    CHANNEL_SHAPE_CROSSWALK,
    TRAPEZOIDAL,
    STATUS_OK,
    STATUS_NOT_OK,
    NOT_AVAILABLE,
)
from .utils import get_type, convert_value_via_xwalk

# ------------------------------------------------------------------------------
# HELPERS

def req_field(**kwargs):
    """shortcut to create a marshmallow-dataclass required field
    """
    return field(metadata=dict(required=True, **kwargs))

def positive(label, **kwargs):
    """shortcut for a required numeric field that must be > 0, with messages
    that name the field by its table label"""
    return req_field(
        validate=Range(min=0, min_inclusive=False, error=f"{label} must be greater than 0"),
        error_messages=dict(
            required=f"{label} is required",
            invalid=f"{label} must be a number",
            special=f"{label} must be a finite number"
        ),
        **kwargs
    )

def choice(label, choices, error):
    """shortcut for a required string field limited to a set of keys"""
    return req_field(
        validate=OneOf(list(choices), error=error),
        error_messages=dict(required=f"{label} is required")
    )

def split_id_list(value):
    """split a comma-separated list of IDs, keeping order and dropping
    repeats. Blank entries are kept so validation can report them."""
    if value is None:
        return []
    if isinstance(value, str):
        if not value.strip():
            return []
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        # a lone numeric ID from a spreadsheet cell
        items = [value]
    ids = []
    for i in items:
        i = str(i).strip()
        if i and i in ids:
            continue
        ids.append(i)
    return ids

def cast_fields(data, dataclass_model, **kwargs):
    """when loading or validating, tidy up raw table values and attempt to
    cast them to their declared types."""
    data = dict(data)
    ftypes = {f.name: get_type(f.type) for f in fields(dataclass_model)}

    for fld, ftype in ftypes.items():
        if fld not in data.keys():
            continue
        value = data[fld]
        if isinstance(value, str):
            value = value.strip()
        # empty cells are treated as missing, so defaults (or required
        # errors) apply
        if value is None or value == "":
            data.pop(fld)
            continue
        # booleans and lists are left to their marshmallow fields
        if ftype in (int, float) and not isinstance(value, bool) and not isinstance(value, ftype):
            try:
                value = ftype(float(value)) if ftype is int else ftype(value)
            # If it can't be cast to the numeric type, then leave it.
            # The record will fail validation.
            except (TypeError, ValueError, OverflowError):
                pass
        # numeric IDs and keys read from xlsx cells
        elif ftype is str and isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(int(value)) if float(value).is_integer() else str(value)
        data[fld] = value
    return data

# ------------------------------------------------------------------------------
# ------------------------------------------------------------------------------
# DATA MODELS + SCHEMAS

# -------------------------------------
# INPUTS

@dataclass
class ChannelInput:
    """One channel to be sized: its catchment, rainfall, and channel
    configuration. Constructing it directly does no validation; use
    ChannelInputSchema to validate and type-cast raw table rows.
    """

    channel_id: str = req_field(
        validate=Length(min=1, error="Channel ID is required"),
        error_messages=dict(required="Channel ID is required")
    )

    # catchment
    catchment_area: float = positive("Catchment Area") # m2
    average_slope: float = positive("Average Slope") # m per 100 m
    flow_path_length: float = positive("Flow Path Length") # m
    surface_type: str = choice("Surface Type", SURFACE_TYPES.keys(), "Invalid Surface Type '{input}'")

    # channel
    channel_gradient: float = positive("Channel Gradient") # m/m
    channel_material: str = choice("Channel Material", CHANNEL_MATERIALS.keys(), "Invalid Channel Material '{input}'")
    channel_shape: str = field(
        default=TRAPEZOIDAL,
        metadata=dict(validate=OneOf(CHANNEL_SHAPES, error="Channel Shape must be 'trapezoidal' or 'u-channel'"))
    )

    # channels draining into this one
    upstream_channel_ids: List[str] = field(default_factory=list)

    # rainfall
    return_period: int = field(
        default=10,
        metadata=dict(
            validate=Range(min=0, min_inclusive=False, error="Return Period must be greater than 0"),
            error_messages=dict(invalid="Return Period must be a whole number of years")
        )
    )
    use_idf: bool = field(default=False, metadata=dict(error_messages=dict(invalid="Use IDF must be 'true' or 'false'")))

    @pre_load
    def cast_fields(self, data, **kwargs):
        data = cast_fields(data, ChannelInput, **kwargs)
        if "upstream_channel_ids" in data:
            data["upstream_channel_ids"] = split_id_list(data["upstream_channel_ids"])
        for fld in ["surface_type", "channel_material", "channel_shape"]:
            if isinstance(data.get(fld), str):
                data[fld] = data[fld].lower()
        if "channel_shape" in data:
            data["channel_shape"] = convert_value_via_xwalk(data["channel_shape"], CHANNEL_SHAPE_CROSSWALK)
        return data

    @validates("upstream_channel_ids")
    def validate_upstream_channel_ids(self, value, **kwargs):
        errors = [
            f"Empty upstream channel ID at position {idx + 1}"
            for idx, i in enumerate(value) if not i.strip()
        ]
        if errors:
            raise ValidationError(errors)

    class Meta:
        unknown = EXCLUDE

ChannelInputSchema = class_schema(ChannelInput)


# -------------------------------------
# RESULTS

@dataclass(frozen=True)
class ChannelResult:
    """Computed design for one channel, 1:1 with a ChannelInput.
    """

    channel_id: str

    # hydrology: times of concentration (minutes), rainfall (mm/hr),
    # runoff coefficient, and peak flow (m3/s)
    catchment_tc: float = 0.0
    upstream_tc: float = 0.0
    effective_tc: float = 0.0
    rainfall_intensity: float = 0.0
    runoff_coefficient: float = 0.0
    peak_flow: float = 0.0

    # sizing (m)
    required_channel_width: float = 0.0
    selected_channel_width: float = 0.0
    selected_channel_size: str = NOT_AVAILABLE

    # verification of the selected channel
    calculated_flow: float = 0.0 # m3/s
    velocity: float = 0.0 # m/s

    status: str = STATUS_NOT_OK
    # design criteria failure
    error: Optional[str] = None
    # high velocity advisory
    velocity_warning: Optional[str] = None

    # False when the calculation itself failed
    processed: bool = False
    processing_error: Optional[str] = None

    @property
    def time_of_concentration(self) -> float:
        return self.effective_tc

    @property
    def ok(self) -> bool:
        return self.processed and self.status == STATUS_OK

    @classmethod
    def failed(cls, channel_id, message):
        """a zeroed result for a record whose calculation raised"""
        return cls(
            channel_id=channel_id,
            status=STATUS_NOT_OK,
            error=message,
            processed=False,
            processing_error=message
        )

    class Meta:
        unknown = EXCLUDE

ChannelResultSchema = class_schema(ChannelResult)


@dataclass
class BatchSummary:
    """Results and counts for a batch run"""

    total_channels: int = 0
    processed_channels: int = 0
    successful_channels: int = 0
    failed_channels: int = 0
    results: List[ChannelResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    # seconds
    processing_time: float = 0.0

BatchSummarySchema = class_schema(BatchSummary)

# ------------------------------------------------------------------------------
# WORKFLOW MODELS

@dataclass
class WorkflowConfig:
    """Store all parameters required for a batch sizing run.
    """

    # input channel table (.csv or .xlsx)
    input_filepath: Optional[str] = None
    # worksheet to read from an .xlsx input; defaults to the first
    sheet: Optional[str] = None
    # results table (.csv or .xlsx)
    output_filepath: Optional[str] = None

    # IDF constants JSON; defaults to the bundled Hong Kong table
    idf_constants_filepath: Optional[str] = None
    # when set, overrides use_idf on every channel
    use_idf_override: Optional[bool] = None

    # channels loaded for this workflow
    channels: List[ChannelInput] = field(default_factory=list)
    # row-level validation messages from loading
    validation_errors: List[str] = field(default_factory=list)

    # outputs of the last run
    summary: Optional[BatchSummary] = None

    class Meta:
        unknown = EXCLUDE

WorkflowConfigSchema = class_schema(WorkflowConfig)
