"""Domain layer: statement documents, expressions, and pure services."""
