"""JSON and CBOR encoders for structured log records, and a CBOR-to-JSON decoder."""

__version__ = "0.1.0"