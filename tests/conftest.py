from os import path
import json
import shutil
from pathlib import Path
import pytest
# models from project
from channelsizer import models

# Test Data on disk
TEST_DATA_DIR = Path(path.dirname(path.abspath(__file__))) / "data"


def make_channel(**kwargs):
    """a valid channel record (the trapezoidal worked example), with any
    fields overridden by kwargs"""
    params = dict(
        channel_id="CH-001",
        catchment_area=1000.0,
        average_slope=5.0,
        flow_path_length=200.0,
        surface_type="asphalt",
        channel_gradient=0.01,
        channel_material="concrete",
        channel_shape="trapezoidal",
        upstream_channel_ids=[],
        return_period=10,
        use_idf=False,
    )
    params.update(kwargs)
    return models.ChannelInput(**params)


@pytest.fixture
def channel():
    """factory for ChannelInput records"""
    return make_channel


class StubIdf:
    """IDF collaborator returning a fixed intensity; records its calls"""

    def __init__(self, intensity=150.0):
        self.intensity = intensity
        self.calls = []

    def __call__(self, return_period, duration, apply_climate_adjustment=False):
        self.calls.append((return_period, duration, apply_climate_adjustment))
        return {"intensity": self.intensity}


@pytest.fixture
def stub_idf():
    return StubIdf()


@pytest.fixture
def sample_channel_csv(tmp_path):
    """copy of the three-channel sample table"""
    shutil.copyfile(
        TEST_DATA_DIR / 'channels_sample.csv',
        tmp_path / 'channels_sample.csv'
    )
    return tmp_path / 'channels_sample.csv'


@pytest.fixture
def invalid_channel_csv(tmp_path):
    """a table with one problem per row, plus a duplicate ID"""
    shutil.copyfile(
        TEST_DATA_DIR / 'channels_invalid.csv',
        tmp_path / 'channels_invalid.csv'
    )
    return tmp_path / 'channels_invalid.csv'


@pytest.fixture
def sample_config(tmp_path, sample_channel_csv):
    """workflow config JSON pointing at the sample table, with IDF forced off"""
    config_path = tmp_path / "config_sample.json"
    with open(config_path, "w") as fp:
        json.dump(dict(input_filepath=str(sample_channel_csv), use_idf_override=False), fp)
    return config_path
