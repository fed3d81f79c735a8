"""Vero — shared primitives."""

from vero.primitives.common import ZERO_ADDRESS, VeroBaseModel, is_absent, new_id, utc_now

__all__ = ["ZERO_ADDRESS", "VeroBaseModel", "is_absent", "new_id", "utc_now"]
