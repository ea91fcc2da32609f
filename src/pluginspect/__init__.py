"""pluginspect: load packaged plugin artifacts in isolation and report their extensions."""

__version__ = "0.1.0"
