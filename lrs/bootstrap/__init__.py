"""Bootstrap wiring: selects port implementations and builds services."""
