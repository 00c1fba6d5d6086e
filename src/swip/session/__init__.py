"""Session sub-package — bookkeeping for measurement sessions."""

from swip.session.manager import SessionManager

__all__ = ["SessionManager"]
