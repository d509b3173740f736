"""Domain layer: pure history model, engines, and ports."""
