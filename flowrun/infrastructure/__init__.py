"""Infrastructure layer: executors, adapters and persistence."""
