"""Application layer: ports, DTOs, and statement services."""
