"""SISRS: Site Identification from Short Read Sequences."""

__version__ = "2.0.0"
