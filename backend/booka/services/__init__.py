"""Business logic services for the Booka booking core."""
