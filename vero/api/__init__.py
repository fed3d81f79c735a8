"""Vero — HTTP surface."""
