"""span-linker: link nested, concurrent and streaming operations into traces."""

__version__ = "0.1.0"
