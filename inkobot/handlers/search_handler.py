#!/usr/bin/env python3
"""
Search Mode Handler for inkobot
Searches switches by MAC, model or location with paginated results.
"""

from ..api_client import InkoToolsClient
from ..callbacks import pagination_keyboard
from ..formatters import format_search
from ..logging_config import get_logger
from ..sessions import Mode
from ..utils import split_last
from .base_handler import BaseHandler, HandlerContext, HandlerResult

logger = get_logger(__name__)


class SearchHandler(BaseHandler):
    """
    Handler for search mode

    A message starts a search at page 1. Navigation buttons carry
    "<keyword> <page>", the page being the last word.
    """

    mode = Mode.SEARCH

    def __init__(self, client: InkoToolsClient, per_page: int = 4):
        self.client = client
        self.per_page = per_page

    def handle(self, text: str, context: HandlerContext) -> HandlerResult:
        return self.search(text, 1)

    def handle_callback(self, command: str, context: HandlerContext) -> HandlerResult:
        keyword, page_text = split_last(command)
        try:
            page = int(page_text)
        except ValueError:
            logger.warning(f"[SearchHandler] Bad page in callback: {command!r}")
            keyword, page = command, 1
        return self.search(keyword, page)

    def search(self, keyword: str, page: int) -> HandlerResult:
        if not keyword:
            return HandlerResult("You are in search mode")
        result, error = self._call_api("search", self.client.search, keyword, page, self.per_page)
        if error:
            return HandlerResult(error)
        keyboard = pagination_keyboard(keyword, page, result.meta.pages.total)
        return HandlerResult(format_search(result), keyboard or None)
