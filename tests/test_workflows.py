import asyncio
from math import isclose

import pytest

from channelsizer import workflows
from channelsizer import models
from channelsizer.exceptions import InputTableError

from .conftest import make_channel, StubIdf


class TestProcessChannel:

    def test_trapezoidal_worked_example(self, channel):
        r = workflows.process_channel(channel())
        assert r.processed
        assert r.processing_error is None
        assert isclose(r.catchment_tc, 10.509, rel_tol=1e-3)
        assert r.upstream_tc == 0
        assert r.effective_tc == r.catchment_tc == r.time_of_concentration
        assert r.rainfall_intensity == 100
        assert r.runoff_coefficient == 0.9
        assert isclose(r.peak_flow, 0.025)
        assert isclose(r.required_channel_width, 0.69, abs_tol=0.01)
        assert r.selected_channel_width == 1.0
        assert r.selected_channel_size == "1.0m"
        assert isclose(r.calculated_flow, 0.143, rel_tol=1e-2)
        assert isclose(r.velocity, 1.53, rel_tol=1e-2)
        assert r.status == "OK"
        assert r.error is None

    def test_u_channel(self, channel):
        r = workflows.process_channel(channel(channel_shape="u-channel", catchment_area=1600))
        assert isclose(r.peak_flow, 0.04)
        assert r.selected_channel_size == "300mm"
        assert r.selected_channel_width == 0.3
        assert r.calculated_flow >= r.peak_flow
        assert isclose(r.velocity, 1.37, rel_tol=1e-2)
        assert r.status == "OK"

    def test_u_channel_beyond_catalog(self, channel):
        r = workflows.process_channel(channel(channel_shape="u-channel", catchment_area=20000))
        assert r.processed
        assert isclose(r.peak_flow, 0.5)
        assert r.selected_channel_size == "600mm"
        assert r.status == "Not OK"
        assert r.error == "Channel capacity (0.307 m³/s) is less than required peak flow (0.500 m³/s)"

    def test_upstream_channels(self, channel):
        r = workflows.process_channel(channel(upstream_channel_ids=["CH-000"]))
        assert r.upstream_tc == 15
        assert r.effective_tc == 15
        assert r.catchment_tc < 15

    def test_idf_collaborator(self, channel, stub_idf):
        r = workflows.process_channel(channel(use_idf=True, return_period=50), stub_idf)
        assert r.rainfall_intensity == 150
        assert isclose(r.peak_flow, 0.0375)
        assert stub_idf.calls == [(50, r.effective_tc, False)]

    def test_idf_collaborator_ignored_when_idf_off(self, channel, stub_idf):
        r = workflows.process_channel(channel(use_idf=False), stub_idf)
        assert r.rainfall_intensity == 100
        assert stub_idf.calls == []

    def test_idf_failure_falls_back(self, channel):
        def broken(*args):
            raise RuntimeError("IDF service unavailable")
        r = workflows.process_channel(channel(use_idf=True), broken)
        assert r.processed
        assert r.rainfall_intensity == 100

    def test_low_velocity(self, channel):
        r = workflows.process_channel(channel(
            catchment_area=10,
            surface_type="lawn",
            channel_shape="u-channel",
            channel_material="riprap",
            channel_gradient=0.0001
        ))
        assert r.selected_channel_size == "100mm"
        assert r.status == "Not OK"
        assert r.error == "Velocity too low (0.02 m/s). Minimum recommended: 0.3 m/s"

    def test_high_velocity_warning(self, channel):
        r = workflows.process_channel(channel(catchment_area=20000, channel_gradient=0.5))
        assert r.status == "OK"
        assert r.error is None
        assert r.velocity > 4.0
        assert r.velocity_warning.startswith("Velocity higher than 4.0 m/s")

    def test_unknown_surface_type_is_impervious(self, channel):
        r = workflows.process_channel(channel(surface_type="tarmac"))
        assert r.processed
        assert r.runoff_coefficient == 1.0


class TestFaultContainment:

    def assert_failed(self, r):
        assert not r.processed
        assert r.status == "Not OK"
        assert r.selected_channel_size == "N/A"
        assert r.error == r.processing_error
        assert r.processing_error
        for f in [
            "catchment_tc", "upstream_tc", "effective_tc", "rainfall_intensity",
            "runoff_coefficient", "peak_flow", "required_channel_width",
            "selected_channel_width", "calculated_flow", "velocity"
        ]:
            assert getattr(r, f) == 0

    @pytest.mark.parametrize("bad", [
        dict(catchment_area=0),
        dict(average_slope=-1),
        dict(flow_path_length=float("nan")),
        dict(channel_gradient=0),
        dict(catchment_area="lots"),
    ])
    def test_bad_inputs(self, channel, bad):
        r = workflows.process_channel(channel(**bad))
        self.assert_failed(r)
        assert r.channel_id == "CH-001"

    def test_unknown_shape(self, channel):
        r = workflows.process_channel(channel(channel_shape="box"))
        self.assert_failed(r)
        assert r.processing_error == "Unknown channel shape 'box'"

    def test_unusable_idf_intensity(self, channel):
        r = workflows.process_channel(channel(use_idf=True), StubIdf(float("nan")))
        self.assert_failed(r)


class TestProcessBatch:

    def records(self):
        return [
            make_channel(channel_id="CH-001"),
            make_channel(channel_id="CH-002", use_idf=True),
            make_channel(channel_id="CH-003", channel_shape="u-channel", catchment_area=20000),
        ]

    def test_batch(self):
        s = workflows.process_batch(self.records())
        assert s.total_channels == 3
        assert s.processed_channels == 3
        assert s.successful_channels == 2
        assert s.failed_channels == 1
        assert [r.channel_id for r in s.results] == ["CH-001", "CH-002", "CH-003"]
        assert s.errors == [
            "Channel CH-003: Channel capacity (0.307 m³/s) is less than required peak flow (0.500 m³/s)"
        ]
        assert s.processing_time >= 0

    def test_one_bad_record_does_not_stop_the_batch(self):
        idf = StubIdf(float("nan"))
        s = workflows.process_batch(self.records(), idf)
        assert len(s.results) == 3
        assert [r.processed for r in s.results] == [True, False, True]
        assert s.processed_channels == 3
        assert s.failed_channels == 2
        message = s.results[1].processing_error
        assert s.errors[:2] == [
            f"Channel CH-002: {message}",
            f"Channel CH-002: Processing error - {message}",
        ]
        assert s.errors[2].startswith("Channel CH-003: Channel capacity")

    def test_counts_add_up(self):
        records = self.records() + [make_channel(channel_id="CH-004", catchment_area=-5)]
        s = workflows.process_batch(records)
        assert s.successful_channels + s.failed_channels == s.total_channels
        assert s.processed_channels == s.total_channels
        # the contained failure reports both its error and its processing error
        assert len(s.errors) == 3
        assert s.errors[1:] == [
            "Channel CH-004: Catchment area must be greater than 0 (-5)",
            "Channel CH-004: Processing error - Catchment area must be greater than 0 (-5)",
        ]

    def test_summary_serializes(self):
        s = workflows.process_batch(self.records())
        schema = models.BatchSummarySchema()
        loaded = schema.load(schema.dump(s))
        assert loaded == s
        failed = models.ChannelResult.failed("CH-9", "boom")
        assert models.ChannelResultSchema().dump(failed)["processing_error"] == "boom"

    def test_progress(self):
        calls = []
        workflows.process_batch(self.records(), on_progress=lambda done, total: calls.append((done, total)))
        assert calls == [(1, 3), (2, 3), (3, 3)]

    def test_empty(self):
        s = workflows.process_batch([])
        assert s.total_channels == 0
        assert s.results == []
        assert s.errors == []

    def test_deterministic(self):
        first = workflows.process_batch(self.records(), StubIdf(120))
        second = workflows.process_batch(self.records(), StubIdf(120))
        assert first.results == second.results
        assert first.errors == second.errors

    def test_async_matches_sync(self):

        async def async_idf(return_period, duration, apply_climate_adjustment):
            await asyncio.sleep(0)
            return {"intensity": 120.0}

        async_summary = asyncio.run(workflows.process_batch_async(self.records(), async_idf))
        sync_summary = workflows.process_batch(self.records(), StubIdf(120.0))
        assert async_summary.results == sync_summary.results
        assert async_summary.results[1].rainfall_intensity == 120.0

    def test_async_accepts_sync_collaborator(self):
        s = asyncio.run(workflows.process_batch_async(self.records(), StubIdf(120.0)))
        assert s.results[1].rainfall_intensity == 120.0


class TestBatchChannelSizing:

    def test_end_to_end_csv(self, sample_channel_csv, tmp_path):
        output = tmp_path / "results.csv"
        w = workflows.BatchChannelSizing(
            input_filepath=str(sample_channel_csv),
            output_filepath=str(output)
        )
        channels = w.load_channels()
        assert [c.channel_id for c in channels] == ["CH-001", "CH-002", "CH-003"]
        assert channels[2].upstream_channel_ids == ["CH-001", "CH-002"]

        summary = w.run()
        assert summary.total_channels == 3
        assert summary.processed_channels == 3
        assert summary.successful_channels == 3
        # CH-003 uses IDF but has no constants for a 25 year return period
        assert summary.results[2].rainfall_intensity == 100
        assert summary.results[2].effective_tc == 15
        assert summary.results[0].rainfall_intensity > 100

        w.export()
        assert output.exists()

    def test_use_idf_override(self, sample_channel_csv, stub_idf):
        w = workflows.BatchChannelSizing(
            calculate_idf=stub_idf,
            input_filepath=str(sample_channel_csv),
            use_idf_override=False
        )
        w.load_channels()
        summary = w.run()
        assert stub_idf.calls == []
        assert all(r.rainfall_intensity == 100 for r in summary.results)
        # the loaded records themselves are untouched
        assert all(c.use_idf for c in w.config.channels)

    def test_config_round_trip(self, sample_config, tmp_path):
        w = workflows.BatchChannelSizing(config_json_filepath=str(sample_config))
        assert w.config.use_idf_override is False
        w.load_channels()
        w.run()

        saved = tmp_path / "saved_config.json"
        w.save_config(saved)
        assert saved.exists()

        w2 = workflows.WorkflowManager(config_json_filepath=str(saved))
        assert w2.config.input_filepath == w.config.input_filepath
        assert w2.config.channels == w.config.channels
        assert isinstance(w2.config.summary, models.BatchSummary)
        assert w2.config.summary.results == w.config.summary.results

    def test_kwargs_override_config(self, sample_config):
        w = workflows.BatchChannelSizing(config_json_filepath=str(sample_config), use_idf_override=True)
        assert w.config.use_idf_override is True

    def test_invalid_table(self, invalid_channel_csv):
        w = workflows.BatchChannelSizing(input_filepath=str(invalid_channel_csv))
        with pytest.raises(InputTableError) as e:
            w.load_channels()
        assert e.value.errors
        assert w.config.validation_errors == e.value.errors
        assert w.config.channels == []

    def test_export_before_run(self, tmp_path):
        w = workflows.BatchChannelSizing()
        with pytest.raises(InputTableError):
            w.export(tmp_path / "results.csv")
