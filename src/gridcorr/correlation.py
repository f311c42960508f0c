r"""
Spatial correlation of two sparse grids.
"""
import logging
import math

import numpy as np

from gridcorr.exceptions import DegenerateStatisticsError, InvalidParameterError
from gridcorr.grid import GridDataset
from gridcorr.stats import RunningStatistics

logger = logging.getLogger(__name__)

# Squared distance below which two centroids count as the same location. The
# unit is the unit of the grid's CRS, so this assumes projected coordinates.
DISTANCE_TRAP_SQUARED = 1.0
TRAP_WEIGHT = 1.0


def inverse_distance_weight(d2):
    r"""
    Inverse distance weight from squared centroid distances.

    Returns ``1 / sqrt(d2)`` where ``d2 > DISTANCE_TRAP_SQUARED`` and
    ``TRAP_WEIGHT`` otherwise, which covers the case of matching cells.
    Accepts scalars and arrays.
    """
    d2 = np.asarray(d2, dtype="float64")
    trapped = d2 <= DISTANCE_TRAP_SQUARED
    weights = np.where(trapped, TRAP_WEIGHT, 1 / np.sqrt(np.where(trapped, 1.0, d2)))
    return weights if weights.ndim else float(weights)


def spatial_bivariate_morans_i(
    x: GridDataset, y: GridDataset, chunk_size: int = 1024
) -> float:
    r"""
    Spatial bivariate Moran's I of two gridded datasets.

    .. math::

        I = \frac{\sum_i \sum_j z^Y_j W_{ij} z^X_i}{\sum_i \sum_j W_{ij}}

    where :math:`z` are the values standardised with the mean and sample
    standard deviation of each dataset and :math:`W_{ij}` is the inverse
    distance between the centroids of cell :math:`i` in `x` and cell
    :math:`j` in `y`, see :func:`inverse_distance_weight`.

    The sum runs over every pair of cells, so the cost is
    ``len(x) * len(y)``. Pairs are evaluated in blocks of `chunk_size` cells
    of `x` to bound memory.

    Parameters
    ----------
    x : GridDataset
        First gridded dataset.
    y : GridDataset
        Second gridded dataset, preferably with the same cell size and extent.
    chunk_size : int, default 1024
        Number of cells of `x` per block.

    Returns
    -------
    float
        The correlation, roughly within [-1, 1] for well-behaved data.

    Raises
    ------
    DegenerateStatisticsError
        If either dataset is empty or has zero or non-finite standard
        deviation.
    InvalidParameterError
        If `chunk_size` is not positive.
    """
    if chunk_size <= 0:
        raise InvalidParameterError(f"Chunk size must be positive, got {chunk_size}.")
    z_x = _standardise(x, "x")
    z_y = _standardise(y, "y")
    centroids_x = x.centroids
    centroids_y = y.centroids
    logger.info(f"Correlating {len(x)} x {len(y)} grid cells.")

    total = 0.0
    total_weight = 0.0
    for start in range(0, len(x), chunk_size):
        block = slice(start, start + chunk_size)
        dx = centroids_x[block, 0, np.newaxis] - centroids_y[np.newaxis, :, 0]
        dy = centroids_x[block, 1, np.newaxis] - centroids_y[np.newaxis, :, 1]
        weights = inverse_distance_weight(dx * dx + dy * dy)
        total += float(z_x[block] @ weights @ z_y)
        total_weight += float(weights.sum())

    return total / total_weight


def matched_correlation(x: GridDataset, y: GridDataset) -> float:
    r"""
    Pearson correlation of the values of matching cells.

    Only cells of `x` and `y` with identical envelopes are paired, cells
    present in one grid only are ignored.

    Raises
    ------
    DegenerateStatisticsError
        If fewer than two cells match or either matched sample is constant.
    """
    y_by_envelope = {cell.envelope: cell.value for cell in y}
    pairs = [
        (cell.value, y_by_envelope[cell.envelope])
        for cell in x
        if cell.envelope in y_by_envelope
    ]
    logger.info(f"{len(pairs)} of {len(x)} cells match.")
    if len(pairs) < 2:
        raise DegenerateStatisticsError(
            f"Need at least two matching cells, got {len(pairs)}."
        )

    values_x, values_y = np.array(pairs, dtype="float64").T
    if values_x.std() == 0 or values_y.std() == 0:
        raise DegenerateStatisticsError("Matched cell values are constant.")

    return float(np.corrcoef(values_x, values_y)[0, 1])


def _standardise(dataset: GridDataset, name: str) -> np.ndarray:
    rs = RunningStatistics()
    rs.extend(cell.value for cell in dataset)
    if rs.n == 0:
        raise DegenerateStatisticsError(f"Dataset `{name}` has no cells.")
    if not math.isfinite(rs.std) or rs.std == 0:
        raise DegenerateStatisticsError(
            f"Dataset `{name}` has a standard deviation of {rs.std} ({rs.n} cells)."
        )
    logger.debug(f"Dataset `{name}`: {rs.snapshot()}")
    return (dataset.values - rs.mean) / rs.std
