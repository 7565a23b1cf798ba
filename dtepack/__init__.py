"""Device tree decoding, search and diff internals."""

__version__ = "0.1.0"
