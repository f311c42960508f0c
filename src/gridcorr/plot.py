import matplotlib.pyplot as plt


def plot_grid(grid, ax=None, column="data", **kwargs):
    if ax is None:
        fig, ax = plt.subplots()
    grid.to_geodataframe(column).plot(ax=ax, column=column, **kwargs)
    return ax


def plot_comparison(features, grid, column="data", ax=None, **kwargs):
    """Draw the grid cells with the boundaries of the source features on top."""
    ax = plot_grid(grid, ax=ax, column=column, **kwargs)
    features.boundary.plot(ax=ax, color="black", linewidth=0.5)
    return ax
