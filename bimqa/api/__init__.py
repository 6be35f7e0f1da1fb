"""Public facade."""

from bimqa.api.facade import BimQA

__all__ = ["BimQA"]
