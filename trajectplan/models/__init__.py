"""Plain data models shared across services."""
