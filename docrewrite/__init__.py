"""Chunked document rewriting: split, select, rewrite, reintegrate."""
