"""Batchplate - batch Jinja2 renderer driven by pluggable data sources."""

__version__ = "0.1.0"

# Configure logging for library use
import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

from .core.models import RenderConfig
from .runner import run_templates

__all__ = ["RenderConfig", "run_templates"]
