"""clubadmin: resilient administration tooling for the club platform."""

__version__ = "1.0.0"
