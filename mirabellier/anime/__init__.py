"""Curated anime list."""
