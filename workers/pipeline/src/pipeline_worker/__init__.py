"""Pipeline worker - embeds documents and generates deliverables."""

__version__ = "0.1.0"
