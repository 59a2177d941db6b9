"""Domain layer: entities, value objects and pure accounting services."""
