"""CampusNav - camera-guided campus navigation assistant."""

__version__ = "0.1.0"
