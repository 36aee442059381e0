"""Concrete drivers for the client's ports."""
