"""Puncture-site encoding and on-screen layout."""
