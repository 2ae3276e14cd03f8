"""Build, validate and serialize package bundle manifests from registry digests and chart requirements."""

__version__ = "0.1.0"