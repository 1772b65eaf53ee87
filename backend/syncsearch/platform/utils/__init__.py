"""Platform utilities."""
