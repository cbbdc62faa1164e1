"""Acquisition adapters. Every module here registers itself on import."""
