"""Configuration, logging, storage, errors and token security."""
