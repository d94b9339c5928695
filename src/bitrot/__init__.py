"""Silent data corruption detection for directory trees."""

__version__ = "0.1.0"
