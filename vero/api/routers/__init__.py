"""Vero — API routers."""
