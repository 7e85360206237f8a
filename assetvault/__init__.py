"""assetvault - versioned, access-controlled asset storage over pluggable backends."""

__version__ = "0.1.0"
