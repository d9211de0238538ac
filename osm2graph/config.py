"""
Configuration settings for osm2graph
"""

from dataclasses import dataclass, field
from pathlib import Path
import os

try:
    from dotenv import load_dotenv
    DOTENV_AVAILABLE = True
except ImportError:
    DOTENV_AVAILABLE = False

from .errors import ConfigValidationError


if DOTENV_AVAILABLE:
    # Project-local .env first, then whatever dotenv finds from the cwd
    env_path = Path(__file__).parent.parent / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=False)
    else:
        load_dotenv()

# Class configuration shipped with the package
DEFAULT_MAPCONFIG = Path(__file__).parent / "data" / "mapconfig.xml"


@dataclass
class ClassificationConfig:
    """How way tags turn into classes and costs"""
    # "drop" excludes unclassified ways, "sentinel" exports them with class 0
    unclassified_policy: str = "drop"
    unclassified_maxspeed: float = 50.0  # km/h, used by the sentinel policy

    # Let per-way OSM tags override the rule defaults
    honor_oneway_tags: bool = True
    honor_maxspeed_tags: bool = True


@dataclass
class TopologyConfig:
    """Way splitting settings"""
    # "haversine" (great-circle metres) or "projected" (planar metres in local_crs)
    length_metric: str = "haversine"
    source_crs: str = "EPSG:4326"  # WGS84 lat/lon
    local_crs: str = "EPSG:3857"

    first_edge_id: int = 1


@dataclass
class DatabaseConfig:
    """Persistence sink settings"""
    dbname: str = field(default_factory=lambda: os.getenv("OSM2GRAPH_DB", "osm2graph.sqlite"))
    prefix: str = field(default_factory=lambda: os.getenv("OSM2GRAPH_PREFIX", ""))
    suffix: str = field(default_factory=lambda: os.getenv("OSM2GRAPH_SUFFIX", ""))

    # Endpoints closer than this (degrees) collapse into one vertex in create_topology
    topology_tolerance: float = 0.0

    # Rows per executemany batch
    batch_size: int = 5000


@dataclass
class PipelineConfig:
    """Pipeline configuration"""
    classification: ClassificationConfig = field(default_factory=ClassificationConfig)
    topology: TopologyConfig = field(default_factory=TopologyConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

    # Export flags (see --addnodes / --clean)
    skip_nodes: bool = True
    clean: bool = False


# Global config instance
config = PipelineConfig()


def get_config() -> PipelineConfig:
    """Get global configuration"""
    return config


def validate_config(config: PipelineConfig) -> None:
    """
    Validate that all configuration values are usable.
    Raises ConfigValidationError listing every problem found.
    """
    errors = []

    cls = config.classification
    if cls.unclassified_policy not in ("drop", "sentinel"):
        errors.append(f"classification.unclassified_policy must be 'drop' or 'sentinel', got {cls.unclassified_policy!r}")
    if cls.unclassified_maxspeed is None or cls.unclassified_maxspeed <= 0:
        errors.append(f"classification.unclassified_maxspeed must be positive, got {cls.unclassified_maxspeed}")

    topo = config.topology
    if topo.length_metric not in ("haversine", "projected"):
        errors.append(f"topology.length_metric must be 'haversine' or 'projected', got {topo.length_metric!r}")
    if topo.length_metric == "projected" and not topo.local_crs:
        errors.append("topology.local_crs is required for the projected length metric")
    if topo.first_edge_id is None or topo.first_edge_id < 0:
        errors.append(f"topology.first_edge_id must be non-negative, got {topo.first_edge_id}")

    db = config.database
    if not db.dbname:
        errors.append("database.dbname is required but not set")
    if db.topology_tolerance < 0:
        errors.append(f"database.topology_tolerance must not be negative, got {db.topology_tolerance}")
    if db.batch_size <= 0:
        errors.append(f"database.batch_size must be positive, got {db.batch_size}")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigValidationError(error_msg)
