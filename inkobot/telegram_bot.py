#!/usr/bin/env python3
"""
Telegram transport for inkobot
------------------------------

Connects the synchronous dispatcher to python-telegram-bot:

- every update is processed in a worker thread (asyncio.to_thread) so a slow
  API call only stalls the update that issued it;
- transport calls made from worker and probe threads are scheduled back on
  the application's event loop and waited for.
"""

import asyncio
import concurrent.futures
from typing import Any, List, Optional

from telegram import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
    ReplyKeyboardRemove,
    Update,
)
from telegram.constants import ParseMode
from telegram.error import TelegramError
from telegram.ext import Application, ApplicationBuilder, CallbackQueryHandler, ContextTypes, MessageHandler, filters

from .callbacks import Keyboard
from .config import ConfigStore
from .dispatcher import Dispatcher, InboundCallback, InboundMessage
from .logging_config import get_logger
from .transport import MessageRef, Transport, TransportError

logger = get_logger(__name__)

# seconds a worker thread waits for a scheduled Bot API call
SEND_TIMEOUT = 60


def inline_markup(keyboard: Keyboard) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [[InlineKeyboardButton(label, callback_data=value) for label, value in row] for row in keyboard]
    )


class TelegramTransport(Transport):
    """Transport backed by a telegram.Bot running on an asyncio loop."""

    def __init__(self, bot: Any = None, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.bot = bot
        self.loop = loop

    def attach(self, bot: Any, loop: asyncio.AbstractEventLoop) -> None:
        self.bot = bot
        self.loop = loop

    def _run(self, coro) -> Any:
        if self.loop is None:
            coro.close()
            raise TransportError("transport is not attached to an event loop")
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        try:
            return future.result(SEND_TIMEOUT)
        except TelegramError as e:
            raise TransportError(str(e)) from e
        except concurrent.futures.TimeoutError as e:
            future.cancel()
            raise TransportError("timed out waiting for the event loop") from e

    def _send(self, uid: int, text: str, markup: Any = None) -> None:
        self._run(self.bot.send_message(chat_id=uid, text=text, parse_mode=ParseMode.HTML, reply_markup=markup))

    def send_text(self, uid: int, text: str) -> None:
        self._send(uid, text)

    def send_text_with_keyboard(self, uid: int, text: str, keyboard: Keyboard) -> None:
        self._send(uid, text, inline_markup(keyboard))

    def edit_text(self, message_ref: MessageRef, text: str) -> None:
        self._run(self.bot.edit_message_text(
            text=text,
            chat_id=message_ref.chat_id,
            message_id=message_ref.message_id,
            parse_mode=ParseMode.HTML,
            reply_markup=message_ref.markup,
        ))

    def edit_text_with_keyboard(self, message_ref: MessageRef, text: str, keyboard: Keyboard) -> None:
        self._run(self.bot.edit_message_text(
            text=text,
            chat_id=message_ref.chat_id,
            message_id=message_ref.message_id,
            parse_mode=ParseMode.HTML,
            reply_markup=inline_markup(keyboard),
        ))

    def send_forward(self, channel: int, from_uid: int, message_ref: MessageRef) -> None:
        self._run(self.bot.forward_message(
            chat_id=channel, from_chat_id=from_uid, message_id=message_ref.message_id,
        ))

    def send_text_with_controls(self, uid: int, text: str, labels: List[str]) -> None:
        markup = ReplyKeyboardMarkup([[KeyboardButton(label) for label in labels]], resize_keyboard=True)
        self._send(uid, text, markup)

    def send_text_remove_controls(self, uid: int, text: str) -> None:
        self._send(uid, text, ReplyKeyboardRemove())


async def on_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    dispatcher: Dispatcher = context.bot_data["dispatcher"]
    message = update.effective_message
    chat = update.effective_chat
    if message is None or chat is None:
        logger.warning("Empty update")
        return
    user = update.effective_user
    inbound = InboundMessage(
        uid=chat.id,
        text=message.text or message.caption or "",
        message_ref=MessageRef(chat.id, message.message_id),
        sender_name=user.full_name if user else "",
        has_attachment=message.effective_attachment is not None,
    )
    await asyncio.to_thread(dispatcher.handle_message, inbound)


async def on_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    dispatcher: Dispatcher = context.bot_data["dispatcher"]
    query = update.callback_query
    chat = update.effective_chat
    if query is None or chat is None:
        logger.warning("Empty callback update")
        return
    message = query.message
    ref = None
    if message is not None:
        ref = MessageRef(message.chat.id, message.message_id, getattr(message, "reply_markup", None))
    await asyncio.to_thread(dispatcher.handle_callback, InboundCallback(chat.id, query.data or "", ref))
    try:
        await query.answer("Done")
    except TelegramError as e:
        logger.warning(f"[callback] answer failed: {e}")


def build_application(config_store: ConfigStore) -> Application:
    """Create the python-telegram-bot Application with the dispatcher wired in."""
    config = config_store.config
    transport = TelegramTransport()

    async def post_init(application: Application) -> None:
        transport.attach(application.bot, asyncio.get_running_loop())
        me = await application.bot.get_me()
        logger.info(f"[init] Authorized on bot account {me.username}")

    async def post_shutdown(application: Application) -> None:
        dispatcher: Dispatcher = application.bot_data["dispatcher"]
        if dispatcher.probes is not None:
            dispatcher.probes.stop_all()

    application = (
        ApplicationBuilder()
        .token(config.bot_token)
        .concurrent_updates(True)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )
    application.bot_data["dispatcher"] = Dispatcher.from_config(config_store, transport)
    application.add_handler(MessageHandler(filters.UpdateType.MESSAGE, on_message))
    application.add_handler(CallbackQueryHandler(on_callback))
    return application


def run(config_store: ConfigStore) -> None:
    """Serve updates by webhook when webhook_url is set, by long polling otherwise."""
    config = config_store.config
    application = build_application(config_store)
    if config.webhook_url:
        logger.info(f"[init] Listening on port {config.listen_port}")
        application.run_webhook(
            listen="0.0.0.0",
            port=config.listen_port,
            url_path=config.bot_token,
            webhook_url=config.webhook_url + config.bot_token,
        )
    else:
        logger.info("[init] Polling for updates")
        application.run_polling()
