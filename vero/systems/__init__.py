"""Vero — registry subsystems."""
