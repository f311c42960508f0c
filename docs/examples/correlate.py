# %% [markdown]
# # Correlate two polygon datasets
# This example demonstrates how to compare two datasets using `gridcorr`.
# The datasets are defined on different polygons, so they cannot be compared directly. Both are interpolated to the same
# sparse grid of square cells first, and the grids are then compared with a spatial bivariate Moran's I.

# %%
import geopandas as gpd
import numpy as np
from matplotlib import pyplot as plt
from shapely.geometry import box

import gridcorr
from gridcorr.plot import plot_comparison

# %%
# Two synthetic datasets on a projected CRS (metres): a coarse and a fine segmentation of the same area
rng = np.random.default_rng(0)


def squares(n, extent=10_000):
    size = extent / n
    return [box(i * size, j * size, (i + 1) * size, (j + 1) * size) for i in range(n) for j in range(n)]


coarse = gpd.GeoDataFrame(geometry=squares(4), crs="EPSG:27700")
coarse["data"] = coarse.centroid.x / 1000 + rng.normal(0, 1, len(coarse))
fine = gpd.GeoDataFrame(geometry=squares(7), crs="EPSG:27700")
fine["data"] = fine.centroid.x / 1000 + rng.normal(0, 1, len(fine))

# %%
grid_coarse = gridcorr.grid_features(coarse, size=1000)
grid_fine = gridcorr.grid_features(fine, size=1000)

fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(6, 3), layout="constrained")
plot_comparison(coarse, grid_coarse, ax=ax1, cmap="Greens")
plot_comparison(fine, grid_fine, ax=ax2, cmap="Greens")
ax1.set_title("Coarse")
ax2.set_title("Fine")

# %%
gridcorr.spatial_bivariate_morans_i(grid_coarse, grid_fine)

# %%
# Cells present in both grids can also be compared one to one
gridcorr.matched_correlation(grid_coarse, grid_fine)
