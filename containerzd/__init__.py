"""Request handlers for a container management service: image and plugin deployment, and container, volume and plugin lifecycle on top of a pluggable container manager."""

__version__ = "0.1.0"