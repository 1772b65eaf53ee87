"""Synchronization engine."""
