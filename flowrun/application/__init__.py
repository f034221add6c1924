"""Application layer: orchestrates domain services for callers."""
