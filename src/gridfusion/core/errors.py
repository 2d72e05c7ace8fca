"""Exception types raised by gridfusion."""


class GridFusionError(Exception):
    """Base class for gridfusion errors."""


class VolumeConfigError(GridFusionError, ValueError):
    """The volume cannot exist in the requested geometric configuration."""
