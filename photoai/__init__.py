"""Backend for the photo AI studio: training, generation and webhook correlation."""

__version__ = "1.0.0"
