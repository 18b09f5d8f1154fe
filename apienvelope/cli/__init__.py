"""CLI module for apienvelope."""
