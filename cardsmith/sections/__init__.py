"""Section naming helpers."""
