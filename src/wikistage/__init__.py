"""wikistage - a personal wiki served straight from a directory of pages."""

__version__ = "0.1.0"
