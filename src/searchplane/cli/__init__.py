"""SearchPlane CLI."""
