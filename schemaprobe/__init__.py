"""schemaprobe: black-box request schema discovery for HTTP APIs."""

__version__ = "0.1.0"
