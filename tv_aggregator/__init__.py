"""Live channel and EPG aggregation pipeline."""
