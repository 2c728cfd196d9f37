"""single-channel and batch sizing, plus classes encapsulating workflows
"""

import json
import math
import logging
from pathlib import Path
from dataclasses import replace
from typing import Callable, Iterable, List, Optional

import click
from codetiming import Timer

from .models import (
    ChannelInput,
    ChannelResult,
    BatchSummary,
    WorkflowConfig,
    WorkflowConfigSchema,
)
from .calculators import runoff, capacity, criteria
from .calculators.idf import IdfCalculator
from .services.spreadsheet import ChannelTableEtl, export_summary
from .exceptions import InvalidInputError, InputTableError
from .config import STATUS_OK

logger = logging.getLogger(__name__)

TIMER_TEXT = "{name}: {:.3f} seconds"

# ------------------------------------------------------------------------------
# Single channel


def _check_positive_inputs(record: ChannelInput):
    for name, value in [
        ("Catchment area", record.catchment_area),
        ("Average slope", record.average_slope),
        ("Flow path length", record.flow_path_length),
        ("Channel gradient", record.channel_gradient),
    ]:
        if not isinstance(value, (int, float)) or isinstance(value, bool) \
                or not math.isfinite(value) or value <= 0:
            raise InvalidInputError(f"{name} must be greater than 0 ({value})")


def _size_and_check(record: ChannelInput, hydrology: runoff.Runoff) -> ChannelResult:
    """everything after the peak flow is known"""
    roughness = capacity.manning_roughness(record.channel_material)
    sizing = capacity.size_channel(
        hydrology.peak_flow,
        record.channel_shape,
        record.channel_gradient,
        roughness
    )
    calculated_flow, velocity = capacity.selected_capacity(
        sizing,
        record.channel_shape,
        record.channel_gradient,
        roughness
    )
    check = criteria.check_design(calculated_flow, hydrology.peak_flow, velocity)

    return ChannelResult(
        channel_id=record.channel_id,
        catchment_tc=hydrology.catchment_tc,
        upstream_tc=hydrology.upstream_tc,
        effective_tc=hydrology.effective_tc,
        rainfall_intensity=hydrology.rainfall_intensity,
        runoff_coefficient=hydrology.runoff_coefficient,
        peak_flow=hydrology.peak_flow,
        required_channel_width=sizing.required_width,
        selected_channel_width=sizing.selected_width,
        selected_channel_size=sizing.selected_size,
        calculated_flow=calculated_flow,
        velocity=velocity,
        status=check.status,
        error=check.error,
        velocity_warning=check.velocity_warning,
        processed=True,
        processing_error=None
    )


def _time_of_concentration(record: ChannelInput) -> runoff.Runoff:
    _check_positive_inputs(record)
    hydrology = runoff.Runoff()
    hydrology.calculate_time_of_concentration(
        record.catchment_area,
        record.average_slope,
        record.flow_path_length,
        record.upstream_channel_ids
    )
    return hydrology


def _failed(record: ChannelInput, e: Exception) -> ChannelResult:
    message = str(e) or type(e).__name__
    logger.warning("Channel %s: processing error - %s", record.channel_id, message)
    return ChannelResult.failed(record.channel_id, message)


def process_channel(record: ChannelInput, calculate_idf: Optional[Callable] = None) -> ChannelResult:
    """Size one channel: time of concentration, rainfall intensity, peak
    flow, channel size, and the design check.

    Never raises for a bad record; any failure is returned as a result with
    `processed=False` and the failure message.

    :param record: the channel to size
    :type record: ChannelInput
    :param calculate_idf: callable(return_period, duration_min, apply_climate_adjustment)
        returning a rainfall intensity (mm/hr), a mapping with "intensity",
        or an object with an `intensity` attribute. Only used for records with
        `use_idf`. Defaults to None (fixed 100 mm/hr).
    :type calculate_idf: Callable, optional
    :return: the result for this record
    :rtype: ChannelResult
    """
    try:
        _check_positive_inputs(record)
        hydrology = runoff.Runoff().calculate(record, calculate_idf)
        return _size_and_check(record, hydrology)
    except Exception as e:
        return _failed(record, e)


async def process_channel_async(record: ChannelInput, calculate_idf: Optional[Callable] = None) -> ChannelResult:
    """`process_channel` for an IDF collaborator that may return an awaitable"""
    try:
        hydrology = _time_of_concentration(record)
        intensity = await runoff.resolve_rainfall_intensity_async(
            record.use_idf,
            record.return_period,
            hydrology.effective_tc,
            calculate_idf
        )
        hydrology.calculate_peak_flow(record.catchment_area, record.surface_type, intensity)
        return _size_and_check(record, hydrology)
    except Exception as e:
        return _failed(record, e)


# ------------------------------------------------------------------------------
# Batch


def _tally(summary: BatchSummary, result: ChannelResult):
    summary.results.append(result)
    # every record counts as processed, including contained failures
    summary.processed_channels += 1
    if result.processed and result.status == STATUS_OK:
        summary.successful_channels += 1
        return
    summary.failed_channels += 1
    if result.error:
        summary.errors.append(f"Channel {result.channel_id}: {result.error}")
    if result.processing_error:
        summary.errors.append(f"Channel {result.channel_id}: Processing error - {result.processing_error}")


def process_batch(
    records: Iterable[ChannelInput],
    calculate_idf: Optional[Callable] = None,
    on_progress: Optional[Callable[[int, int], None]] = None
    ) -> BatchSummary:
    """Size a batch of channels, in input order.

    :param records: channel records
    :type records: Iterable[ChannelInput]
    :param calculate_idf: IDF collaborator, see `process_channel`
    :type calculate_idf: Callable, optional
    :param on_progress: called with (completed, total) after each record
    :type on_progress: Callable[[int, int], None], optional
    :return: all results, counts, error lines and elapsed time
    :rtype: BatchSummary
    """
    records = list(records)
    summary = BatchSummary(total_channels=len(records))

    with Timer(name="Sizing channels", text=TIMER_TEXT, logger=logger.info) as t:
        for i, record in enumerate(records):
            _tally(summary, process_channel(record, calculate_idf))
            if on_progress is not None:
                on_progress(i + 1, summary.total_channels)

    summary.processing_time = t.last
    return summary


async def process_batch_async(
    records: Iterable[ChannelInput],
    calculate_idf: Optional[Callable] = None,
    on_progress: Optional[Callable[[int, int], None]] = None
    ) -> BatchSummary:
    """`process_batch` for an IDF collaborator that may return an
    awaitable. Records are still sized one at a time, in order."""
    records = list(records)
    summary = BatchSummary(total_channels=len(records))

    with Timer(name="Sizing channels", text=TIMER_TEXT, logger=logger.info) as t:
        for i, record in enumerate(records):
            _tally(summary, await process_channel_async(record, calculate_idf))
            if on_progress is not None:
                on_progress(i + 1, summary.total_channels)

    summary.processing_time = t.last
    return summary


# ------------------------------------------------------------------------------
# Workflow Base Class


class WorkflowManager:
    """Base class for all workflows. Provides methods for storing and
    persisting results for workflows.
    """

    def __init__(
        self,
        config_json_filepath=None,
        **kwargs
        ):

        # initialize an empty WorkflowConfig object with default values
        self.config: WorkflowConfig = WorkflowConfig()

        # if any config files provided, load here. This will replace the
        # config object entirely
        self.config_json_filepath = config_json_filepath
        self.load_config()

        # regardless of what happens above, we have a config object. Now we
        # use the provided keyword arguments to update it, overriding any that
        # were provided in the JSON file.
        self.config = replace(self.config, **kwargs)

    def load_config(self, config_json_filepath=None):
        """load a workflow from a JSON file

        Note that validation via WorkflowConfigSchema will fail if the JSON has
        been manually changed outside in a way that doesn't follow the schema
        (i.e., it has to serialize correctly to load)
        """

        # select the file path ref to load. defaults to arg, falls back to
        # instance variable
        cjf = None
        if config_json_filepath:
            cjf = config_json_filepath
            self.config_json_filepath = cjf
        elif self.config_json_filepath:
            cjf = self.config_json_filepath

        # reads from disk, validates, and stores
        if cjf:
            logger.info("Reading workflow config from %s", cjf)
            with open(cjf, encoding="utf-8") as fp:
                config_as_dict = json.load(fp)
            self.config = WorkflowConfigSchema().load(config_as_dict, partial=True)

        return self

    def save_config(self, config_json_filepath):
        """Save workflow config to JSON.

        Note that validation via WorkflowConfigSchema will only fail
        if our code is doing something wrong.
        """

        self.config_json_filepath = Path(config_json_filepath)

        c = WorkflowConfigSchema().dump(self.config)
        with open(config_json_filepath, 'w', encoding="utf-8") as fp:
            json.dump(c, fp, indent=2, ensure_ascii=False)

        return self


# ------------------------------------------------------------------------------
# Channel sizing workflow


class BatchChannelSizing(WorkflowManager):
    """Read a channel table, validate it, size every channel, and export the
    results. Each step can also be run on its own.
    """

    def __init__(
        self,
        calculate_idf: Optional[Callable] = None,
        **kwargs
        ):
        """
        Args:
            calculate_idf (Callable, optional): IDF collaborator used for records with use_idf. Defaults to an IdfCalculator over config.idf_constants_filepath (or the bundled constants).
            **kwargs: WorkflowConfig fields, or config_json_filepath
        """
        super().__init__(**kwargs)
        self._calculate_idf = calculate_idf

    @property
    def calculate_idf(self):
        if self._calculate_idf is None:
            self._calculate_idf = IdfCalculator(filepath=self.config.idf_constants_filepath)
        return self._calculate_idf

    def load_channels(self, input_filepath=None, sheet=None) -> List[ChannelInput]:
        """read and validate the input table into config.channels

        :raises InputTableError: when the table fails validation; messages
            are also kept in config.validation_errors
        """
        input_filepath = input_filepath or self.config.input_filepath
        sheet = sheet or self.config.sheet
        if not input_filepath:
            raise InputTableError("No input channel table provided")
        self.config.input_filepath = str(input_filepath)

        if Path(input_filepath).suffix.lower() in (".xlsx", ".xlsm"):
            etl = ChannelTableEtl(xlsx_file=input_filepath, sheet=sheet)
        else:
            etl = ChannelTableEtl(csv_file=input_filepath)

        click.echo("Reading channel table")
        try:
            with Timer(name="Reading channel table", text=TIMER_TEXT, logger=logger.info):
                channels = etl.load_channels()
        except InputTableError as e:
            self.config.validation_errors = list(e.errors)
            raise

        self.config.validation_errors = []
        self.config.channels = channels
        return channels

    def _channels_to_run(self) -> List[ChannelInput]:
        if self.config.use_idf_override is None:
            return list(self.config.channels)
        return [replace(c, use_idf=self.config.use_idf_override) for c in self.config.channels]

    def run(self, on_progress=None) -> BatchSummary:
        """size all channels in config.channels, storing the summary on config"""
        channels = self._channels_to_run()
        calculate_idf = self.calculate_idf if any(c.use_idf for c in channels) else None
        self.config.summary = process_batch(channels, calculate_idf, on_progress)
        return self.config.summary

    def export(self, output_filepath=None):
        """write the last run's results to CSV or XLSX"""
        output_filepath = output_filepath or self.config.output_filepath
        if self.config.summary is None:
            raise InputTableError("Nothing to export; run the workflow first")
        if not output_filepath:
            raise InputTableError("No output file provided")
        self.config.output_filepath = str(output_filepath)
        with Timer(name="Exporting results", text=TIMER_TEXT, logger=logger.info):
            export_summary(self.config.summary, output_filepath)
        return output_filepath
