"""In-memory search index and query answering."""
