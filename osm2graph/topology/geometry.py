"""
Length calculations for node sequences
"""

from typing import Optional, Sequence, Tuple
import numpy as np
from loguru import logger

try:
    from pyproj import Transformer
    PYPROJ_AVAILABLE = True
except ImportError:
    PYPROJ_AVAILABLE = False
    logger.warning("pyproj not available - projected lengths unavailable")

from ..config import TopologyConfig, get_config

EARTH_RADIUS_M = 6371000.0  # Earth radius in meters


def haversine_segments(lons: np.ndarray, lats: np.ndarray) -> np.ndarray:
    """Great-circle length in meters of each consecutive pair of points"""
    phi = np.radians(lats)
    lam = np.radians(lons)
    delta_phi = np.diff(phi)
    delta_lambda = np.diff(lam)

    a = np.sin(delta_phi / 2) ** 2 + np.cos(phi[:-1]) * np.cos(phi[1:]) * np.sin(delta_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


def planar_segments(xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    """Euclidean length of each consecutive pair of points"""
    return np.hypot(np.diff(xs), np.diff(ys))


class LengthCalculator:
    """
    Segment lengths for a sequence of [lon, lat] points

    "haversine" gives great-circle metres. "projected" transforms into
    config.local_crs first and measures planar metres there.
    """

    def __init__(self, config: Optional[TopologyConfig] = None):
        self.config = config or get_config().topology
        self._transformer = None
        if self.config.length_metric == "projected":
            if not PYPROJ_AVAILABLE:
                raise RuntimeError("pyproj is required for the projected length metric")
            self._transformer = Transformer.from_crs(
                self.config.source_crs, self.config.local_crs, always_xy=True
            )

    def segment_lengths(self, coords: Sequence[Tuple[float, float]]) -> np.ndarray:
        """Length of each of the len(coords) - 1 segments"""
        if len(coords) < 2:
            return np.zeros(0, dtype=np.float64)
        points = np.asarray(coords, dtype=np.float64)
        lons, lats = points[:, 0], points[:, 1]
        if self._transformer is not None:
            xs, ys = self._transformer.transform(lons, lats)
            return planar_segments(np.asarray(xs), np.asarray(ys))
        return haversine_segments(lons, lats)

    def length(self, coords: Sequence[Tuple[float, float]]) -> float:
        return float(np.sum(self.segment_lengths(coords)))
