"""Date conversions and pagination helpers."""
