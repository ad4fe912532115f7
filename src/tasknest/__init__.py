"""TaskNest - nested todo lists with tags and manual ordering."""

__version__ = "0.1.0"
