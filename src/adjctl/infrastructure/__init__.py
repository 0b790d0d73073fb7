"""Infrastructure layer — SQLite store adapters and the graph engine.

This layer depends on stdlib and third-party libs (SQLAlchemy, NetworkX).
Store adapters translate between table rows and domain records; they
never make graph-consistency decisions. Those belong to the service layer.
"""
