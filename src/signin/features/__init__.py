"""HTTP features."""
