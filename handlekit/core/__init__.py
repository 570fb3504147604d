"""Configuration, error taxonomy and shared types."""
