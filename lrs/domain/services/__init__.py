"""Pure domain services: identity helpers, dates, and statement filters."""
