"""Field technical-assistance monitoring: CSV ingestion, statistics and dashboard support."""

__version__ = "0.3.0"
