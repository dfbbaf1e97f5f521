"""Remote drive client exports."""

from __future__ import annotations

from .aliyunpan_client import AliyunpanClient

__all__ = ["AliyunpanClient"]
