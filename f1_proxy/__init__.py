"""F1 API Proxy - cached, validated facade over the Jolpica F1 API."""

__version__ = "1.0.0"
