"""HTTP resource API in front of the Xymon daemon's line protocol."""

__title__ = "xymon-gateway"
__version__ = "1.0.0"
