"""Configuration model, errors and per-run lifecycle."""
