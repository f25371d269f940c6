"""Domain layer: models, repository ports and scrambling services."""
