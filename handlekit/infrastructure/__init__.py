"""Logging, OS error translation and filesystem access."""
