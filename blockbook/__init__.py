"""Blockbook — a document of named, interdependent blocks."""
