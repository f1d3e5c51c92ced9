"""appdeploy — application detection and self-healing install for managed devices."""

__version__ = "0.1.0"
