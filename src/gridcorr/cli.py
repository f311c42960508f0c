import logging
import time
from pathlib import Path

import click
import geopandas as gpd

import gridcorr
from gridcorr.source import DEFAULT_STAGING_DIR, DEFAULT_URL_TEMPLATE

logger = logging.getLogger(__name__)


@click.command(help="Grid two remote maps and print their spatial correlation.")
@click.argument("size", type=click.FLOAT)
@click.argument("map_id_x", type=click.INT)
@click.argument("map_id_y", type=click.INT)
@click.option(
    "--url-template",
    default=DEFAULT_URL_TEMPLATE,
    envvar="GRIDCORR_URL_TEMPLATE",
    type=click.STRING,
    help="Download URL with {map_id} and {extension} placeholders.",
)
@click.option("--staging-dir", default=DEFAULT_STAGING_DIR, type=click.Path())
@click.option("--column", default="data", type=click.STRING)
@click.option("--export-cells", default=None, type=click.Path())
def correlate(size, map_id_x, map_id_y, url_template, staging_dir, column, export_cells):
    if export_cells is not None and Path(export_cells).exists():
        raise ValueError("Destination file already exists.")

    logger.info(f"GridSize={size} MapIdX={map_id_x} MapIdY={map_id_y}")
    source = gridcorr.source.FeatureSource(url_template, staging_dir)
    features_x = source.load(map_id_x)
    features_y = source.load(map_id_y)

    start = time.perf_counter()
    grid_x = gridcorr.grid.grid_features(features_x, size, column=column)
    logger.info(f"Gridded map {map_id_x} in {time.perf_counter() - start:.2f}s.")
    grid_y = gridcorr.grid.grid_features(features_y, size, column=column)

    if export_cells is not None:
        grid_x.to_file(export_cells, column=column)

    i = gridcorr.correlation.spatial_bivariate_morans_i(grid_x, grid_y)
    click.echo(f"I={i}")


@click.command(help="Grid a polygon file and write the cells.")
@click.argument("data", type=click.STRING)
@click.argument("size", type=click.FLOAT)
@click.argument("destination", type=click.STRING)
@click.option("--column", default="data", type=click.STRING)
def grid(data, size, destination, column):
    if Path(destination).exists():
        raise ValueError("Destination file already exists.")

    _data = gpd.read_file(data)

    gridded = gridcorr.grid.grid_features(_data, size, column=column)
    gridded.to_file(destination, column=column)
    click.echo(f"{len(gridded)} cells")


@click.group()
@click.option("--verbose", is_flag=True, default=False)
def cli(verbose):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


cli.add_command(correlate)
cli.add_command(grid)
