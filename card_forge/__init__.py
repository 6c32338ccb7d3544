"""card-forge: character card codec for PNG images."""

__version__ = "0.1.0"
