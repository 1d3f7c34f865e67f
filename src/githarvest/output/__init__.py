"""Output renderers — terminal and JSON."""
