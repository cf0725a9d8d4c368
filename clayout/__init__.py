"""Parse, evaluate and annotate textual descriptions of C type layouts."""

__version__ = "0.1.0"