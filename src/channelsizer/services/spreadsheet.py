import logging
from pathlib import Path
from typing import List

import click
import petl as etl

from ..models import ChannelInput, ChannelInputSchema, BatchSummary
from ..calculators import stats
from ..exceptions import InputTableError
from ..utils import (
    validate_petl_record_w_schema,
    convert_value_via_xwalk,
    read_csv_with_petl,
    header_key
)
from .spreadsheet_config import (
    CHANNEL_TABLE_COLUMNS,
    CHANNEL_TABLE_HEADER_XWALK,
    TEMPLATE_SAMPLE_ROWS,
    TEMPLATE_DATA_SHEET,
    TEMPLATE_REFERENCE_SHEET,
    TEMPLATE_REFERENCE_ROWS,
    RESULT_EXPORT_COLUMNS,
    RESULTS_SHEET,
    SUMMARY_SHEET,
    ERRORS_SHEET,
    SIZES_SHEET,
)

logger = logging.getLogger(__name__)

ROW_NUMBER_FIELD = "row_number"
VALIDATION_ERRORS_FIELD = "validation_errors"

# spreadsheet row of the first record (row 1 is the header)
FIRST_DATA_ROW = 2


def _is_xlsx(filepath):
    return Path(filepath).suffix.lower() in (".xlsx", ".xlsm")


def flatten_validation_errors(errors):
    """flatten a marshmallow error dictionary (field -> messages, possibly
    nested) into a list of messages, in field order"""
    messages = []
    if isinstance(errors, dict):
        for v in errors.values():
            messages.extend(flatten_validation_errors(v))
    elif isinstance(errors, (list, tuple)):
        for v in errors:
            messages.extend(flatten_validation_errors(v))
    elif errors:
        messages.append(str(errors))
    return messages


class ChannelTableEtl:
    """Read a channel table (CSV, XLSX, or an existing PETL table), crosswalk
    its headers to ChannelInput fields, and validate each row.
    """

    def __init__(
        self,
        csv_file=None,
        xlsx_file=None,
        petl_table=None,
        sheet=None,
        header_xwalk=CHANNEL_TABLE_HEADER_XWALK
        ) -> None:

        self.csv_file = csv_file
        self.xlsx_file = xlsx_file
        self.petl_table = petl_table
        self.sheet = sheet
        self.header_xwalk = header_xwalk

        self.channel_input_schema = ChannelInputSchema()

        self.extracted_table = None
        self.table = None
        self.validation_errors: List[str] = []

    # --------------------------------------------------------------------------
    # ETL HELPER FUNCTIONS

    def _crosswalk_header(self, raw_table):
        """rename recognized columns to ChannelInput field names; other
        columns pass through untouched"""
        renames = {}
        for h in etl.header(raw_table):
            f = convert_value_via_xwalk(
                header_key(h),
                self.header_xwalk,
                preserve_non_matches=False
            )
            if f is not None and f != h:
                renames[h] = f
        if renames:
            return etl.rename(raw_table, renames)
        return raw_table

    def _row_messages(self, row):
        """row-numbered messages for one validated row"""
        return [
            f"Row {row[ROW_NUMBER_FIELD]}: {m}"
            for m in flatten_validation_errors(row[VALIDATION_ERRORS_FIELD])
        ]

    # --------------------------------------------------------------------------
    # ETL FUNCTIONS

    def extract(self):
        """read the source into a PETL table with crosswalked headers, row
        numbers, and blank rows removed.
        """
        if self.petl_table is not None:
            raw_table = self.petl_table
        elif self.csv_file:
            raw_table = read_csv_with_petl(self.csv_file)
        elif self.xlsx_file:
            # first sheet unless one is named
            raw_table = etl.fromxlsx(str(self.xlsx_file), sheet=self.sheet, read_only=True)
        else:
            raise InputTableError("No input provided for the channel table")

        t = self._crosswalk_header(raw_table)
        missing = [f for f, _ in CHANNEL_TABLE_COLUMNS if f not in etl.header(t)]
        if "channel_id" in missing:
            raise InputTableError(
                "Channel table has no Channel ID column",
                errors=[f"Missing column: {label}" for f, label in CHANNEL_TABLE_COLUMNS if f in missing]
            )
        if missing:
            logger.info("channel table is missing optional or required columns: %s", missing)

        self.extracted_table = etl\
            .addrownumbers(t, start=FIRST_DATA_ROW, field=ROW_NUMBER_FIELD)\
            .select(lambda rec: any(v not in (None, "") for v in rec[1:]))
        self.table = self.extracted_table

        return self.table

    def validate(self) -> List[str]:
        """Validate every row against the ChannelInput schema and check that
        channel IDs are unique. Returns (and stores) the list of messages;
        an empty list means the table is good to go.
        """
        if self.extracted_table is None:
            self.extract()

        schema = self.channel_input_schema
        self.table = etl.addfield(
            self.extracted_table,
            VALIDATION_ERRORS_FIELD,
            lambda rec: validate_petl_record_w_schema(rec, schema)
        )

        messages = []
        for row in etl.selectnotnone(self.table, VALIDATION_ERRORS_FIELD).records():
            messages.extend(self._row_messages(row))

        ids = [
            str(v).strip()
            for v in etl.values(self.table, "channel_id")
            if v is not None and str(v).strip()
        ]
        if len(ids) != len(set(ids)):
            messages.append("Duplicate Channel IDs found. Each channel must have a unique ID.")

        n = etl.nrows(self.table)
        if messages:
            click.echo(f"> {len(messages)} problems found in {n} rows of the channel table")
        else:
            click.echo(f"> All {n} rows conform to the channel table schema")

        self.validation_errors = messages
        return messages

    def load_channels(self) -> List[ChannelInput]:
        """Validate and load the table as ChannelInput records.

        :raises InputTableError: when any row fails validation; the row
            messages are on the exception's `errors` attribute
        :return: channel records in table order
        :rtype: List[ChannelInput]
        """
        errors = self.validate()
        if errors:
            raise InputTableError(
                f"Channel table failed validation ({len(errors)} problems)",
                errors=errors
            )
        return [
            self.channel_input_schema.load(dict(row))
            for row in etl.cutout(self.table, ROW_NUMBER_FIELD, VALIDATION_ERRORS_FIELD).dicts()
        ]


# ------------------------------------------------------------------------------
# TEMPLATE + EXPORT


def write_template(filepath):
    """Write a channel table template, with three example rows, to CSV or
    XLSX. The XLSX template gets an extra sheet listing valid values.
    """
    header = tuple(label for _, label in CHANNEL_TABLE_COLUMNS)
    table = [header] + list(TEMPLATE_SAMPLE_ROWS)

    if _is_xlsx(filepath):
        etl.toxlsx(table, str(filepath), sheet=TEMPLATE_DATA_SHEET, mode="overwrite")
        reference = [("Category", "Valid Values")] + list(TEMPLATE_REFERENCE_ROWS)
        etl.toxlsx(reference, str(filepath), sheet=TEMPLATE_REFERENCE_SHEET, mode="add")
    else:
        etl.tocsv(table, str(filepath), encoding="utf-8")

    logger.info("wrote channel table template to %s", filepath)
    return filepath


def results_table(results):
    """PETL table of channel results, using the export column labels"""

    def _value(result, getter, decimals):
        v = getter(result) if callable(getter) else getattr(result, getter)
        if decimals is not None and v is not None:
            return round(v, decimals)
        return v

    header = tuple(label for label, _, _ in RESULT_EXPORT_COLUMNS)
    rows = [
        tuple(_value(r, getter, decimals) for _, getter, decimals in RESULT_EXPORT_COLUMNS)
        for r in results
    ]
    return etl.wrap([header] + rows)


def summary_table(summary: BatchSummary):
    """PETL table of batch processing metrics"""
    return etl.wrap([
        ("Metric", "Value"),
        ("Total Channels", summary.total_channels),
        ("Processed Channels", summary.processed_channels),
        ("Successful Designs", summary.successful_channels),
        ("Failed Designs", summary.failed_channels),
        ("Success Rate (%)", round(stats.success_rate(summary), 1)),
        ("Processing Time (s)", round(summary.processing_time, 3)),
        ("Average Time per Channel (s)", round(stats.average_time_per_channel(summary), 4)),
    ])


def errors_table(summary: BatchSummary):
    return etl.wrap(
        [("Error #", "Error Message")] +
        [(i + 1, e) for i, e in enumerate(summary.errors)]
    )


def size_distribution_table(summary: BatchSummary):
    return etl.wrap(
        [("Selected Size", "Channels")] +
        stats.size_distribution(summary.results)
    )


def export_summary(summary: BatchSummary, filepath):
    """Write batch results to CSV (results only) or XLSX (results,
    processing summary, size distribution and, when there are any, errors).
    """
    results = results_table(summary.results)

    if _is_xlsx(filepath):
        etl.toxlsx(results, str(filepath), sheet=RESULTS_SHEET, mode="overwrite")
        etl.toxlsx(summary_table(summary), str(filepath), sheet=SUMMARY_SHEET, mode="add")
        etl.toxlsx(size_distribution_table(summary), str(filepath), sheet=SIZES_SHEET, mode="add")
        if summary.errors:
            etl.toxlsx(errors_table(summary), str(filepath), sheet=ERRORS_SHEET, mode="add")
    else:
        etl.tocsv(results, str(filepath), encoding="utf-8")

    logger.info("exported %s channel results to %s", summary.total_channels, filepath)
    return filepath
