import logging
import math
from dataclasses import dataclass
from typing import Callable, Iterator, Protocol, Sequence

import geopandas as gpd
import numpy as np
import shapely
from shapely import STRtree
from shapely.geometry import box

from gridcorr.exceptions import InvalidParameterError

logger = logging.getLogger(__name__)

POLYGON_TYPES = ("Polygon", "MultiPolygon")


@dataclass(frozen=True)
class Cell:
    r"""
    One square grid cell bounded by an envelope, carrying a data value.
    """

    minx: float
    miny: float
    maxx: float
    maxy: float
    value: float

    @property
    def envelope(self) -> tuple[float, float, float, float]:
        return (self.minx, self.miny, self.maxx, self.maxy)

    @property
    def centroid(self) -> tuple[float, float]:
        return ((self.minx + self.maxx) / 2, (self.miny + self.maxy) / 2)

    @property
    def area(self) -> float:
        return (self.maxx - self.minx) * (self.maxy - self.miny)

    @property
    def geometry(self) -> shapely.Polygon:
        return box(*self.envelope)

    def matches(self, other: "Cell") -> bool:
        """Two cells match if their envelopes are equal, whatever their values."""
        return self.envelope == other.envelope


@dataclass(frozen=True)
class GridDataset:
    r"""
    Sparse grid: the ordered, non-empty cells of one feature collection
    gridded at one cell size.

    Cells are ordered row by row from the bottom left.
    """

    cells: tuple[Cell, ...]
    size: float
    crs: object = None

    def __len__(self):
        return len(self.cells)

    def __iter__(self) -> Iterator[Cell]:
        return iter(self.cells)

    def __getitem__(self, item):
        return self.cells[item]

    @property
    def values(self) -> np.ndarray:
        return np.array([cell.value for cell in self.cells], dtype="float64")

    @property
    def centroids(self) -> np.ndarray:
        return np.array([cell.centroid for cell in self.cells], dtype="float64").reshape(
            -1, 2
        )

    def to_geodataframe(self, column: str = "data") -> gpd.GeoDataFrame:
        r"""
        Convert the cells to a GeoDataFrame with one square polygon per cell.

        Parameters
        ----------
        column : str, default "data"
            Name of the value column, stored in single precision.

        Returns
        -------
        gpd.GeoDataFrame
            Cell polygons and their values.
        """
        return gpd.GeoDataFrame(
            {column: np.array(self.values, dtype="float32")},
            geometry=[cell.geometry for cell in self.cells],
            crs=self.crs,
        )

    def to_file(self, destination, driver: str | None = None, column: str = "data"):
        """Write the cells to a polygon file, e.g. a shapefile or GeoJSON."""
        logger.info(f"Writing {len(self)} grid cells to {destination}.")
        self.to_geodataframe(column).to_file(destination, driver=driver)


class SpatialIndex(Protocol):
    def query(self, envelope: tuple[float, float, float, float]) -> np.ndarray:
        """Positions of the features whose envelope intersects `envelope`."""
        ...


class STRtreeIndex:
    r"""
    Range queries over feature envelopes backed by a shapely STRtree.
    """

    def __init__(self, geometries: Sequence[shapely.Geometry]):
        self._tree = STRtree(geometries)

    def query(self, envelope):
        # STRtree does not guarantee an order, sorting keeps sums reproducible
        return np.sort(self._tree.query(box(*envelope)))


class BruteForceIndex:
    r"""
    Treats every feature as a candidate for every query.
    """

    def __init__(self, geometries: Sequence[shapely.Geometry]):
        self._positions = np.arange(len(geometries))

    def query(self, envelope):
        return self._positions


def grid_features(
    features: gpd.GeoDataFrame,
    size: float,
    column: str = "data",
    index: Callable[[np.ndarray], SpatialIndex] = STRtreeIndex,
) -> GridDataset:
    r"""
    Interpolate polygon data onto a sparse grid of square cells.

    The value of each feature is distributed pro rata over the cells it
    overlaps: a cell receives ``value * intersection_area / cell_area`` from
    every feature that intersects it. Cells without any overlapping feature
    are left out.

    The grid origin is snapped to ``floor(min / size) * size`` on both axes,
    so that grids of the same size built from different data are congruent.
    A cell is only created if its lower left corner lies strictly inside the
    bounds of the features.

    Parameters
    ----------
    features : gpd.GeoDataFrame
        Polygon features carrying the value to grid.
    size : float
        Edge length of the cells, in units of the features' CRS.
    column : str, default "data"
        Name of the attribute in `features` to grid.
    index : callable, default STRtreeIndex
        Factory building a spatial index from the feature geometries. Any
        index returning at least the features whose envelopes intersect a
        query envelope gives the same result.

    Returns
    -------
    GridDataset
        The non-empty cells.
    """
    if not (math.isfinite(size) and size > 0):
        raise InvalidParameterError(f"Grid size must be a positive number, got {size}.")
    if column not in features.columns:
        raise InvalidParameterError(f"Column `{column}` not found in features.")
    _check_geometries(features.geometry)

    if len(features) == 0:
        logger.info("No features to grid, returning an empty grid.")
        return GridDataset(cells=(), size=size, crs=features.crs)

    geometries = np.asarray(features.geometry.values, dtype=object)
    values = features[column].to_numpy(dtype="float64")
    non_finite = np.flatnonzero(~np.isfinite(values))
    if len(non_finite):
        raise InvalidParameterError(
            f"Column `{column}` has missing or non-finite values at positions {non_finite.tolist()}."
        )
    bounds = shapely.bounds(geometries)
    spatial_index = index(geometries)

    minx, miny, maxx, maxy = features.total_bounds
    origin_x = math.floor(minx / size) * size
    origin_y = math.floor(miny / size) * size
    n_cols = math.ceil((maxx - origin_x) / size)
    n_rows = math.ceil((maxy - origin_y) / size)
    logger.info(f"Grid: size={size} cells={n_cols} x {n_rows}={n_cols * n_rows}")

    cells = []
    for y in _steps(origin_y, maxy, size):
        for x in _steps(origin_x, maxx, size):
            cell = _interpolate_cell(
                (x, y, x + size, y + size), geometries, values, bounds, spatial_index
            )
            if cell is not None:
                cells.append(cell)

    logger.info(f"Gridded {len(features)} features to {len(cells)} non-empty cells.")
    return GridDataset(cells=tuple(cells), size=size, crs=features.crs)


def _check_geometries(geometries: gpd.GeoSeries):
    if geometries.isna().any():
        raise InvalidParameterError("Features must not have null geometries.")
    if geometries.is_empty.any():
        raise InvalidParameterError("Features must not have empty geometries.")
    invalid_types = set(geometries.geom_type) - set(POLYGON_TYPES)
    if invalid_types:
        raise InvalidParameterError(
            f"Features must be polygons, got {', '.join(sorted(invalid_types))}."
        )
    invalid = np.flatnonzero(~shapely.is_valid(geometries.values))
    if len(invalid):
        raise InvalidParameterError(
            f"Features have invalid geometries at positions {invalid.tolist()}."
        )


def _steps(start: float, stop: float, size: float) -> Iterator[float]:
    # multiply rather than accumulate so cell edges do not drift
    k = 0
    while (position := start + k * size) < stop:
        yield position
        k += 1


def _interpolate_cell(envelope, geometries, values, bounds, spatial_index) -> Cell | None:
    candidates = np.asarray(spatial_index.query(envelope), dtype="intp")
    if len(candidates) == 0:
        return None

    minx, miny, maxx, maxy = envelope
    candidate_bounds = bounds[candidates]
    overlaps = (
        (candidate_bounds[:, 0] <= maxx)
        & (candidate_bounds[:, 2] >= minx)
        & (candidate_bounds[:, 1] <= maxy)
        & (candidate_bounds[:, 3] >= miny)
    )
    candidates = candidates[overlaps]
    if len(candidates) == 0:
        return None

    cell_geometry = box(*envelope)
    cell_area = cell_geometry.area
    areas = shapely.area(shapely.intersection(geometries[candidates], cell_geometry))

    # touching boundaries give zero area and do not count
    positive = areas > 0
    if not positive.any():
        return None

    value = 0.0
    for feature_value, area in zip(values[candidates][positive], areas[positive]):
        value += feature_value * (area / cell_area)

    return Cell(minx, miny, maxx, maxy, value)
