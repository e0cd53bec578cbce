"""Map delimited text columns onto a target field catalog and export the result."""

__version__ = "0.1.0"
