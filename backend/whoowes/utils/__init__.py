"""Request validators and parsing helpers."""
