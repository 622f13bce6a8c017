"""API subpackage - FastAPI boundary for the presentation layer."""
