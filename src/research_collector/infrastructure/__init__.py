"""Infrastructure layer: upstream source adapters and record storage."""
