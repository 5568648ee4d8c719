"""Local-first city catalog: prefix search, pagination, favorites and TTL refresh."""

__version__ = "0.1.0"
