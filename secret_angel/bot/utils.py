from __future__ import annotations

import html
import re
from typing import List

from aiogram import Bot, types
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramBadRequest
from loguru import logger

from secret_angel.services.flow import SecretAngelFlow, SendFunc

MESSAGE_LIMIT = 4096
_TAG_RE = re.compile(r"<[^>]+>")


def split_message(text: str, limit: int = MESSAGE_LIMIT) -> List[str]:
    if len(text) <= limit:
        return [text]

    chunks: List[str] = []
    current = ""
    for line in text.split("\n"):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks


def strip_markup(text: str) -> str:
    return html.unescape(_TAG_RE.sub("", text))


def make_sender(bot: Bot) -> SendFunc:
    async def send(chat_id: int, text: str, rich: bool = False) -> None:
        for chunk in split_message(text):
            if rich:
                try:
                    await bot.send_message(chat_id, chunk, parse_mode=ParseMode.HTML)
                    continue
                except TelegramBadRequest as exc:
                    logger.bind(chat_id=chat_id).warning(
                        "Formatted message rejected, resending as plain text: {error}", error=str(exc)
                    )
                chunk = strip_markup(chunk)
            await bot.send_message(chat_id, chunk, parse_mode=None)

    return send


def log_handler_exception(action: str, user_id: int | None, chat_id: int | None, error: Exception) -> None:
    logger.bind(action=action, user_id=user_id, chat_id=chat_id).exception(
        "Handler error: {error}", error=str(error)
    )


async def forward_command(message: types.Message, flow: SecretAngelFlow, command: str) -> None:
    try:
        await flow.handle_command(message.chat.id, message.from_user.id, command)
    except Exception as exc:
        log_handler_exception(command, message.from_user.id, message.chat.id, exc)
        await message.answer("Something went wrong. Please try again later.")
