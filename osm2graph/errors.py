"""
Exception hierarchy

Fatal conditions raise one of these and propagate to the CLI unchanged.
Recoverable data defects are never raised, they are counted on the RunContext.
"""


class Osm2GraphError(Exception):
    """Base class for every structured osm2graph error"""


class InputError(Osm2GraphError):
    """An input document could not be read or parsed"""

    def __init__(self, path, reason: str):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class DataFileError(InputError):
    """The OSM data document is unreadable or malformed"""


class ConfigFileError(InputError):
    """The classification configuration document is unreadable or malformed"""


class ConfigValidationError(Osm2GraphError):
    """Application configuration has invalid values"""


class ModelStateError(Osm2GraphError):
    """The raw map model was used in the wrong phase (mutated after or read before finalize)"""


class SinkError(Osm2GraphError):
    """The persistence sink failed"""


class SinkConnectionError(SinkError):
    """The destination store is unreachable"""


class SpatialSupportError(SinkError):
    """The destination store lacks the spatial capability we need"""
