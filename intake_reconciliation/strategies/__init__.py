"""Matching tier strategies."""
