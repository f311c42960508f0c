import logging
from pathlib import Path
from urllib import request

import geopandas as gpd
import pyogrio

DEFAULT_URL_TEMPLATE = "http://www.maptube.org/api/FileDownloadService.svc/{map_id}/{extension}"
DEFAULT_STAGING_DIR = "stageddata"

logger = logging.getLogger(__name__)


class FeatureSource:
    r"""
    Polygon datasets served by a file download service, identified by map id.

    Files are staged in a local directory and only downloaded if they are not
    there yet, which saves repeated downloads when one map is compared with
    many others.

    Parameters
    ----------
    url_template : str
        Download URL with `{map_id}` and `{extension}` placeholders.
    staging_dir : str | Path
        Directory in which downloaded files are kept.
    """

    def __init__(
        self,
        url_template: str = DEFAULT_URL_TEMPLATE,
        staging_dir: str | Path = DEFAULT_STAGING_DIR,
    ):
        self.url_template = url_template
        self.staging_dir = Path(staging_dir)

    def url(self, map_id: int, extension: str) -> str:
        return self.url_template.format(map_id=map_id, extension=extension)

    def stage_file(self, uri: str, filename: str) -> Path:
        r"""
        Download `uri` to `filename` in the staging directory.

        Parameters
        ----------
        uri : str
            URL of the file.
        filename : str
            Name of the file relative to the staging directory.

        Returns
        -------
        Path
            Path of the staged file.
        """
        self.staging_dir.mkdir(parents=True, exist_ok=True)
        path = self.staging_dir / filename
        if path.exists():
            logger.debug(f"Using staged file {path}.")
            return path

        logger.info(f"Downloading from {uri} to {path}.")
        partial = path.with_suffix(path.suffix + ".part")
        try:
            request.urlretrieve(uri, partial)
        except BaseException:
            partial.unlink(missing_ok=True)
            raise
        partial.replace(path)
        return path

    def load(self, map_id: int) -> gpd.GeoDataFrame:
        r"""
        Stage the geometry and attribute files of a map and read them.

        Parameters
        ----------
        map_id : int
            Identifier of the map.

        Returns
        -------
        gpd.GeoDataFrame
            Features of the map.
        """
        stem = f"mapid_{map_id}"
        shp = self.stage_file(self.url(map_id, "shp"), f"{stem}.shp")
        self.stage_file(self.url(map_id, "dbf"), f"{stem}.dbf")
        features = _read_shapefile(shp)
        logger.info(f"Loaded {len(features)} features of map {map_id}.")
        return features


def _read_shapefile(path: Path) -> gpd.GeoDataFrame:
    # The download service only serves .shp and .dbf, GDAL rebuilds the .shx.
    previous = pyogrio.get_gdal_config_option("SHAPE_RESTORE_SHX")
    pyogrio.set_gdal_config_options({"SHAPE_RESTORE_SHX": True})
    try:
        return gpd.read_file(path, engine="pyogrio")
    finally:
        pyogrio.set_gdal_config_options({"SHAPE_RESTORE_SHX": previous})
