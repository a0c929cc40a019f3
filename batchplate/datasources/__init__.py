"""Data sources and template functions."""

from .context import DataContext, DataSource, parse_header, parse_source

__all__ = ["DataContext", "DataSource", "parse_header", "parse_source"]
