import pytest
import petl as etl
import openpyxl

from channelsizer.services import spreadsheet
from channelsizer.services.spreadsheet_config import (
    CHANNEL_TABLE_COLUMNS,
    RESULT_EXPORT_COLUMNS,
    RESULTS_SHEET,
    SUMMARY_SHEET,
    ERRORS_SHEET,
    SIZES_SHEET,
    TEMPLATE_DATA_SHEET,
    TEMPLATE_REFERENCE_SHEET,
)
from channelsizer import models, workflows
from channelsizer.exceptions import InputTableError

from .conftest import make_channel


FIELD_HEADER = tuple(f for f, _ in CHANNEL_TABLE_COLUMNS)


class TestChannelInputSchema:

    def test_load_casts_table_values(self):
        c = models.ChannelInputSchema().load({
            "channel_id": " CH-9 ",
            "catchment_area": "1000",
            "average_slope": "5",
            "flow_path_length": "200",
            "surface_type": "Asphalt",
            "upstream_channel_ids": "CH-1, CH-2,CH-1",
            "return_period": "10",
            "use_idf": "TRUE",
            "channel_shape": "U-Channel",
            "channel_gradient": "0.01",
            "channel_material": "Concrete",
            "notes": "ignored"
        })
        assert c.channel_id == "CH-9"
        assert c.catchment_area == 1000.0
        assert c.surface_type == "asphalt"
        assert c.upstream_channel_ids == ["CH-1", "CH-2"]
        assert c.return_period == 10
        assert c.use_idf is True
        assert c.channel_shape == "u-channel"
        assert c.channel_material == "concrete"

    def test_defaults(self):
        c = models.ChannelInputSchema().load({
            "channel_id": "CH-9",
            "catchment_area": 1000,
            "average_slope": 5,
            "flow_path_length": 200,
            "surface_type": "asphalt",
            "channel_gradient": 0.01,
            "channel_material": "concrete",
            "channel_shape": "",
            "upstream_channel_ids": ""
        })
        assert c.channel_shape == "trapezoidal"
        assert c.upstream_channel_ids == []
        assert c.return_period == 10
        assert c.use_idf is False

    @pytest.mark.parametrize("field,value,message", [
        ("channel_id", "", "Channel ID is required"),
        ("catchment_area", "-1", "Catchment Area must be greater than 0"),
        ("average_slope", "steep", "Average Slope must be a number"),
        ("channel_gradient", "0", "Channel Gradient must be greater than 0"),
        ("surface_type", "tarmac", "Invalid Surface Type 'tarmac'"),
        ("channel_material", "wood", "Invalid Channel Material 'wood'"),
        ("channel_shape", "box", "Channel Shape must be 'trapezoidal' or 'u-channel'"),
        ("upstream_channel_ids", "CH-1,,CH-2", "Empty upstream channel ID at position 2"),
    ])
    def test_validation_messages(self, field, value, message):
        data = models.ChannelInputSchema().dump(make_channel())
        data[field] = value
        errors = models.ChannelInputSchema().validate(data)
        assert message in spreadsheet.flatten_validation_errors(errors)

    def test_valid_record(self):
        data = models.ChannelInputSchema().dump(make_channel())
        assert models.ChannelInputSchema().validate(data) == {}


class TestChannelTableEtl:

    def test_load_sample_csv(self, sample_channel_csv):
        channels = spreadsheet.ChannelTableEtl(csv_file=sample_channel_csv).load_channels()
        assert len(channels) == 3
        assert all(isinstance(c, models.ChannelInput) for c in channels)
        ch3 = channels[2]
        assert ch3.channel_id == "CH-003"
        assert ch3.upstream_channel_ids == ["CH-001", "CH-002"]
        assert ch3.return_period == 25
        assert ch3.use_idf is True
        assert channels[1].channel_shape == "u-channel"

    def test_invalid_csv_messages(self, invalid_channel_csv):
        etl_ = spreadsheet.ChannelTableEtl(csv_file=invalid_channel_csv)
        errors = etl_.validate()
        assert "Row 2: Catchment Area must be greater than 0" in errors
        assert "Row 3: Invalid Surface Type 'tarmac'" in errors
        assert "Row 4: Empty upstream channel ID at position 2" in errors
        assert "Row 4: Channel Shape must be 'trapezoidal' or 'u-channel'" in errors
        assert errors[-1] == "Duplicate Channel IDs found. Each channel must have a unique ID."
        assert len(errors) == 5
        assert etl_.validation_errors == errors

    def test_invalid_csv_load_raises(self, invalid_channel_csv):
        with pytest.raises(InputTableError) as e:
            spreadsheet.ChannelTableEtl(csv_file=invalid_channel_csv).load_channels()
        assert len(e.value.errors) == 5

    def test_validate_twice(self, invalid_channel_csv):
        etl_ = spreadsheet.ChannelTableEtl(csv_file=invalid_channel_csv)
        assert etl_.validate() == etl_.validate()

    def test_petl_table_with_field_headers(self):
        t = etl.wrap([
            FIELD_HEADER,
            ("CH-1", 1000, 5, 200, "asphalt", None, 10, False, "trapezoidal", 0.01, "concrete"),
            ("", None, None, None, None, None, None, None, None, None, None),
            ("CH-2", 500, 3, 150, "lawn", "CH-1", 10, False, "u-channel", 0.008, "concrete"),
        ])
        channels = spreadsheet.ChannelTableEtl(petl_table=t).load_channels()
        assert [c.channel_id for c in channels] == ["CH-1", "CH-2"]
        assert channels[1].upstream_channel_ids == ["CH-1"]

    def test_camel_case_headers(self):
        t = etl.wrap([
            ("channelId", "catchmentArea", "averageSlope", "flowPathLength", "surfaceType",
             "channelGradient", "channelMaterial"),
            ("CH-1", 1000, 5, 200, "asphalt", 0.01, "concrete"),
        ])
        channels = spreadsheet.ChannelTableEtl(petl_table=t).load_channels()
        assert channels[0].catchment_area == 1000
        assert channels[0].channel_shape == "trapezoidal"

    def test_row_numbers_skip_blank_rows(self):
        t = etl.wrap([
            FIELD_HEADER,
            ("", None, None, None, None, None, None, None, None, None, None),
            ("CH-2", 0, 3, 150, "lawn", None, 10, False, "u-channel", 0.008, "concrete"),
        ])
        errors = spreadsheet.ChannelTableEtl(petl_table=t).validate()
        assert errors == ["Row 3: Catchment Area must be greater than 0"]

    def test_missing_channel_id_column(self):
        t = etl.wrap([("catchment_area",), (1000,)])
        with pytest.raises(InputTableError) as e:
            spreadsheet.ChannelTableEtl(petl_table=t).extract()
        assert "Missing column: Channel ID" in e.value.errors

    def test_no_input(self):
        with pytest.raises(InputTableError):
            spreadsheet.ChannelTableEtl().extract()


class TestTemplate:

    def test_csv_template(self, tmp_path):
        p = spreadsheet.write_template(tmp_path / "template.csv")
        channels = spreadsheet.ChannelTableEtl(csv_file=p).load_channels()
        assert [c.channel_id for c in channels] == ["CH-001", "CH-002", "CH-003"]
        assert channels[2].upstream_channel_ids == ["CH-001", "CH-002"]

    def test_xlsx_template(self, tmp_path):
        p = spreadsheet.write_template(tmp_path / "template.xlsx")
        wb = openpyxl.load_workbook(p)
        assert wb.sheetnames == [TEMPLATE_DATA_SHEET, TEMPLATE_REFERENCE_SHEET]

        channels = spreadsheet.ChannelTableEtl(xlsx_file=p, sheet=TEMPLATE_DATA_SHEET).load_channels()
        assert len(channels) == 3
        assert channels[2].return_period == 25
        assert all(c.use_idf for c in channels)


class TestExport:

    def summary(self):
        return workflows.process_batch([
            make_channel(channel_id="CH-001"),
            make_channel(channel_id="CH-002", channel_shape="u-channel", catchment_area=1600),
            make_channel(channel_id="CH-003", catchment_area=0),
        ])

    def test_results_table(self):
        t = spreadsheet.results_table(self.summary().results)
        assert etl.header(t) == tuple(label for label, _, _ in RESULT_EXPORT_COLUMNS)
        rows = list(etl.dicts(t))
        assert rows[0]["Selected Size"] == "1.0m"
        assert rows[0]["Peak Flow (L/s)"] == 25.0
        assert rows[0]["Processed"] == "Yes"
        assert rows[1]["Selected Size"] == "300mm"
        assert rows[2]["Processed"] == "No"
        assert rows[2]["Design Status"] == "Not OK"
        assert rows[2]["Processing Error"]

    def test_csv_export(self, tmp_path):
        p = spreadsheet.export_summary(self.summary(), tmp_path / "results.csv")
        t = etl.fromcsv(str(p), encoding="utf-8")
        assert etl.header(t) == tuple(label for label, _, _ in RESULT_EXPORT_COLUMNS)
        assert etl.nrows(t) == 3

    def test_xlsx_export(self, tmp_path):
        p = spreadsheet.export_summary(self.summary(), tmp_path / "results.xlsx")
        wb = openpyxl.load_workbook(p)
        assert wb.sheetnames == [RESULTS_SHEET, SUMMARY_SHEET, SIZES_SHEET, ERRORS_SHEET]

        metrics = dict(etl.records(etl.fromxlsx(str(p), sheet=SUMMARY_SHEET)))
        assert metrics["Total Channels"] == 3
        assert metrics["Processed Channels"] == 3
        assert metrics["Successful Designs"] == 2
        assert metrics["Failed Designs"] == 1

        errors = etl.fromxlsx(str(p), sheet=ERRORS_SHEET)
        assert etl.nrows(errors) == 2

    def test_xlsx_export_without_errors(self, tmp_path):
        summary = workflows.process_batch([make_channel()])
        p = spreadsheet.export_summary(summary, tmp_path / "results.xlsx")
        assert ERRORS_SHEET not in openpyxl.load_workbook(p).sheetnames
