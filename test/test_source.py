from urllib.error import URLError

import pyogrio
import pytest
from numpy.testing import assert_allclose

from gridcorr import source
from gridcorr.source import FeatureSource
from fixtures import gradient_features


@pytest.fixture
def downloads(monkeypatch):
    calls = []

    def urlretrieve(url, filename):
        calls.append(url)
        with open(filename, "wb") as f:
            f.write(b"content")

    monkeypatch.setattr(source.request, "urlretrieve", urlretrieve)
    return calls


def test_url():
    feature_source = FeatureSource("http://localhost:8080/{map_id}/{extension}")

    assert feature_source.url(2725, "shp") == "http://localhost:8080/2725/shp"


def test_stage_file_downloads_once(tmp_path, downloads):
    feature_source = FeatureSource(staging_dir=tmp_path / "staged")

    first = feature_source.stage_file("http://example.org/1/shp", "mapid_1.shp")
    second = feature_source.stage_file("http://example.org/1/shp", "mapid_1.shp")

    assert first == second == tmp_path / "staged" / "mapid_1.shp"
    assert first.read_bytes() == b"content"
    assert downloads == ["http://example.org/1/shp"]


def test_stage_file_propagates_errors(tmp_path, monkeypatch):
    def urlretrieve(url, filename):
        raise URLError("unreachable")

    monkeypatch.setattr(source.request, "urlretrieve", urlretrieve)
    feature_source = FeatureSource(staging_dir=tmp_path)

    with pytest.raises(URLError):
        feature_source.stage_file("http://example.org/1/shp", "mapid_1.shp")


def test_load_staged_map(tmp_path, downloads, gradient_features):
    gradient_features.to_file(tmp_path / "mapid_7.shp")
    feature_source = FeatureSource(staging_dir=tmp_path)

    loaded = feature_source.load(7)

    assert downloads == []
    assert len(loaded) == len(gradient_features)
    assert_allclose(loaded["data"], gradient_features["data"])


def test_interrupted_download_is_not_staged(tmp_path, monkeypatch):
    calls = []

    def urlretrieve(url, filename):
        calls.append(url)
        with open(filename, "wb") as f:
            f.write(b"trunc")
        if len(calls) == 1:
            raise ConnectionResetError("connection reset")
        with open(filename, "wb") as f:
            f.write(b"content")

    monkeypatch.setattr(source.request, "urlretrieve", urlretrieve)
    feature_source = FeatureSource(staging_dir=tmp_path)

    with pytest.raises(ConnectionResetError):
        feature_source.stage_file("http://example.org/1/shp", "mapid_1.shp")
    assert list(tmp_path.iterdir()) == []

    path = feature_source.stage_file("http://example.org/1/shp", "mapid_1.shp")

    assert len(calls) == 2
    assert path.read_bytes() == b"content"
    assert list(tmp_path.iterdir()) == [path]


def test_load_restores_missing_index(tmp_path, downloads, gradient_features):
    gradient_features.to_file(tmp_path / "mapid_3.shp")
    (tmp_path / "mapid_3.shx").unlink()
    feature_source = FeatureSource(staging_dir=tmp_path)

    loaded = feature_source.load(3)

    assert len(loaded) == len(gradient_features)
    assert pyogrio.get_gdal_config_option("SHAPE_RESTORE_SHX") is None
