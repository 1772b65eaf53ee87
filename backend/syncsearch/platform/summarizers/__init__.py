"""Summarization gateways."""
