"""Public auth exports for alipanprovider."""

from __future__ import annotations

from .session import SessionManager

__all__ = ["SessionManager"]
