"""Admin API adapters (remote command/query executor)."""
