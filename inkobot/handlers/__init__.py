"""
MODE HANDLERS
-------------
One handler per session mode. The dispatcher picks the handler matching the
user's current mode and hands it the residual message text.
"""

from .admin_handler import AdminHandler
from .base_handler import BaseHandler, HandlerContext, HandlerResult
from .ping_handler import PingHandler
from .raw_handler import RawHandler
from .report_handler import ReportHandler
from .search_handler import SearchHandler

__all__ = [
    "AdminHandler",
    "BaseHandler",
    "HandlerContext",
    "HandlerResult",
    "PingHandler",
    "RawHandler",
    "ReportHandler",
    "SearchHandler",
]
