"""SyncSearch: cached, summarized, searchable indexes of remote client data."""
