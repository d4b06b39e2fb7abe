"""Read-only query tooling for the municipal analytics databases."""

__version__ = "1.0.0"
