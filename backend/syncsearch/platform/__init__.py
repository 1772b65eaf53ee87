"""Platform integrations: sources, summarizers and the sync engine."""
