"""Read-side repository functions."""
