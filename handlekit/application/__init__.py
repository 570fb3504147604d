"""Error propagation and scoped acquisition."""
