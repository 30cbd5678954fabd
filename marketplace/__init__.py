"""Client core of the services marketplace: orders, favorites and session."""

__version__ = "1.0.0"
