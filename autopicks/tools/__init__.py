"""MCP tool implementations; each returns a user-facing string."""
