"""autopicks: curated used Toyota/Honda listings."""

__version__ = "0.1.0"
