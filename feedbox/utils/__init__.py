"""Feedbox utilities."""
