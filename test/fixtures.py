import geopandas as gpd
import numpy as np
import pytest
from shapely.geometry import Polygon, box


def get_random_polygon(rng, xlim: tuple, ylim: tuple, max_size: float):
    x = rng.random() * (xlim[1] - xlim[0]) + xlim[0]
    y = rng.random() * (ylim[1] - ylim[0]) + ylim[0]
    width, height = rng.random(2) * max_size + 0.1
    # a triangle cut off a box so edges are not always axis aligned
    return Polygon([(x, y), (x + width, y), (x + width, y + height), (x, y + height / 2)])


def get_square_segmentation(xlim, ylim, resolution):
    size = (xlim[1] - xlim[0]) / resolution
    polygons = []
    for i in range(resolution):
        for j in range(resolution):
            x, y = xlim[0] + i * size, ylim[0] + j * size
            polygons.append(box(x, y, x + size, y + size))
    return polygons


def features(geometries, values, column="data"):
    return gpd.GeoDataFrame({column: values}, geometry=geometries, crs="EPSG:27700")


@pytest.fixture
def unit_square():
    return features([box(0, 0, 1, 1)], [10.0])


@pytest.fixture
def random_features():
    rng = np.random.default_rng(42)
    geometries = [get_random_polygon(rng, (0, 20), (0, 20), 5) for _ in range(30)]
    return features(geometries, rng.random(30) * 100)


@pytest.fixture
def gradient_features():
    geometries = get_square_segmentation((0, 8), (0, 8), 4)
    values = [float(i) for i in range(len(geometries))]
    return features(geometries, values)
