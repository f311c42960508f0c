from gridcorr import correlation, grid, source, stats
from gridcorr.correlation import matched_correlation, spatial_bivariate_morans_i
from gridcorr.exceptions import DegenerateStatisticsError, InvalidParameterError
from gridcorr.grid import Cell, GridDataset, grid_features
from gridcorr.stats import RunningStatistics

__version__ = "0.1.0"
