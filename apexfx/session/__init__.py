"""Session store package."""

from apexfx.session.store import SessionStore

__all__ = ["SessionStore"]
