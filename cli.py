#!/usr/bin/env python
"""
Command-line interface for osm2graph

Usage:
    python cli.py generate --file map.osm --conf mapconfig.xml --dbname routing.sqlite
    python cli.py generate -f map.osm --addnodes --clean --edges edges.geojson
    python cli.py visualize --input edges.geojson --output edges.png
"""

import os
import sys
import copy
import argparse
import traceback

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from loguru import logger
from osm2graph import __version__
from osm2graph.config import get_config, DEFAULT_MAPCONFIG
from osm2graph.errors import Osm2GraphError
from osm2graph.export import SQLiteGraphSink
from osm2graph.pipeline import Osm2GraphPipeline


def setup_logging(verbose: bool = False):
    """Configure logging"""
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        level=level
    )


def apply_args(config, args):
    """Copy command line overrides into the pipeline config"""
    config.skip_nodes = not args.addnodes
    config.clean = args.clean
    if args.dbname:
        config.database.dbname = args.dbname
    if args.prefix is not None:
        config.database.prefix = args.prefix
    if args.suffix is not None:
        config.database.suffix = args.suffix
    if args.tolerance is not None:
        config.database.topology_tolerance = args.tolerance
    if args.length_metric:
        config.topology.length_metric = args.length_metric
    if args.unclassified:
        config.classification.unclassified_policy = args.unclassified
    return config


def cmd_generate(args):
    """Convert an OSM extract into a routable graph"""
    setup_logging(args.verbose)

    if not os.path.exists(args.file):
        logger.error(f"Data file not found: {args.file}")
        return 1

    config = apply_args(copy.deepcopy(get_config()), args)
    sink = None if args.no_db else SQLiteGraphSink(config.database)
    pipeline = Osm2GraphPipeline(config=config, sink=sink)

    try:
        result = pipeline.run(
            data_file=args.file,
            conf_file=args.conf,
            edges_file=args.edges
        )
        logger.info(f"✓ {len(result.edges)} edges from {result.model.way_count} ways")
        if result.context.total_defects:
            logger.info(f"  {result.context.total_defects} data defects skipped")
        return 0

    except Osm2GraphError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    except (OSError, ValueError) as e:
        logger.error(f"Failed: {e}")
        return 1
    except Exception as e:
        logger.error(f"Terminating, unexpected {type(e).__name__}: {e}")
        if args.verbose:
            traceback.print_exc()
        return 1
    finally:
        if sink is not None:
            sink.close()


def cmd_visualize(args):
    """Plot an edge file written by `generate --edges`"""
    setup_logging(args.verbose)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    try:
        import geopandas as gpd
        import matplotlib.pyplot as plt
    except ImportError:
        logger.error("geopandas and matplotlib are required for visualization. Install with: pip install geopandas matplotlib")
        return 1

    edges = gpd.read_file(args.input)
    logger.info(f"Visualizing {len(edges)} edges from {args.input}")

    fig, ax = plt.subplots(1, 1, figsize=(12, 12))
    edges.plot(ax=ax, column="class_id", categorical=True, linewidth=1.2, legend=True,
               legend_kwds={"title": "class_id", "loc": "upper right"})

    # One-way edges drawn dashed on top
    one_way = edges[edges["one_way"] != 0]
    if not one_way.empty:
        one_way.plot(ax=ax, color="black", linewidth=0.4, linestyle="--")

    endpoints_x = list(edges["x1"]) + list(edges["x2"])
    endpoints_y = list(edges["y1"]) + list(edges["y2"])
    ax.scatter(endpoints_x, endpoints_y, s=6, c="red", zorder=3, label="Edge endpoints")

    ax.set_title(f"{os.path.basename(args.input)}: {len(edges)} edges")
    ax.set_xlabel("Longitude")
    ax.set_ylabel("Latitude")
    ax.set_aspect("equal", adjustable="datalim")

    if args.output:
        plt.savefig(args.output, dpi=150, bbox_inches='tight', facecolor='white')
        logger.info(f"Saved visualization to: {args.output}")
    else:
        plt.show()

    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="osm2graph - OpenStreetMap to routable graph",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Import into SQLite:
    python cli.py generate --file map.osm --conf mapconfig.xml --dbname routing.sqlite

  Re-import from scratch with raw nodes and an edge GeoJSON:
    python cli.py generate -f map.osm --clean --addnodes --edges edges.geojson

  Visualize the edges:
    python cli.py visualize --input edges.geojson --output edges.png
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--version", action="version", version=f"osm2graph {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Generate command
    gen_parser = subparsers.add_parser("generate", help="Convert an OSM file into a routing graph")
    gen_parser.add_argument("--file", "-f", required=True, help="OSM XML file (.osm, .osm.gz, .osm.bz2)")
    gen_parser.add_argument("--conf", "-c", default=str(DEFAULT_MAPCONFIG), help="Class configuration XML")
    gen_parser.add_argument("--dbname", "-d", help="SQLite database file (default: $OSM2GRAPH_DB)")
    gen_parser.add_argument("--prefix", help="Prefix added to table names")
    gen_parser.add_argument("--suffix", help="Suffix added to table names")
    gen_parser.add_argument("--addnodes", action="store_true", help="Also export the raw OSM nodes")
    gen_parser.add_argument("--clean", action="store_true", help="Drop existing tables first")
    gen_parser.add_argument("--tolerance", type=float, help="Vertex snapping tolerance in degrees")
    gen_parser.add_argument("--length-metric", choices=["haversine", "projected"], help="How edge lengths are measured")
    gen_parser.add_argument("--unclassified", choices=["drop", "sentinel"], help="What to do with ways no class matches")
    gen_parser.add_argument("--edges", "-o", help="Also write edges to a .geojson or .gpkg file")
    gen_parser.add_argument("--no-db", action="store_true", help="Skip the database export")
    gen_parser.set_defaults(func=cmd_generate)

    # Visualize command
    viz_parser = subparsers.add_parser("visualize", help="Plot an edge file")
    viz_parser.add_argument("--input", "-i", required=True, help="Edge file written by generate --edges")
    viz_parser.add_argument("--output", "-o", help="Output image file (shows window if not specified)")
    viz_parser.set_defaults(func=cmd_visualize)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
