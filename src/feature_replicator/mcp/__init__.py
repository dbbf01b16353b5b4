"""MCP stdio server exposing the feature-replicator tools."""
