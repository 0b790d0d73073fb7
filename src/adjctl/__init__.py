"""adjctl — adjacency graph consistency engine for redistricting units."""

__version__ = "0.1.0"
