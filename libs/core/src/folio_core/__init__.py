"""Folio core - domain models, authorization and document lifecycle."""

__version__ = "0.1.0"
