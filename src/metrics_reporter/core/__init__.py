"""Core models, reporter and report pipeline."""
