"""Domain layer: anchoring, orchestration and suggestion lifecycle."""
