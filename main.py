from __future__ import annotations

import asyncio
import contextlib

import uvloop
from aiogram import Bot
from aiogram.types import BotCommand, BotCommandScopeDefault
from loguru import logger

from secret_angel.bot import create_bot, create_dispatcher
from secret_angel.bot.utils import make_sender
from secret_angel.bot.webhook import run_webhook
from secret_angel.core.config import Settings, load_settings
from secret_angel.core.logging import setup_logging
from secret_angel.db import init_engine
from secret_angel.services.conversation import ConversationStore
from secret_angel.services.flow import ADMIN_COMMANDS, USER_COMMANDS, SecretAngelFlow
from secret_angel.services.rate_limit import RateLimiter

RATE_LIMIT_PRUNE_SECONDS = 5 * 60


async def set_default_commands(bot: Bot) -> None:
    await bot.set_my_commands(
        [
            BotCommand(command=command, description=description)
            for command, description in {**USER_COMMANDS, **ADMIN_COMMANDS}.items()
        ],
        scope=BotCommandScopeDefault(),
    )


async def on_startup(bot: Bot, settings: Settings) -> None:
    logger.info("bot starting...")

    await set_default_commands(bot)

    bot_info = await bot.get_me()

    logger.info("Name     - {name}", name=bot_info.full_name)
    logger.info("Username - @{username}", username=bot_info.username)
    logger.info("ID       - {id}", id=bot_info.id)

    if settings.use_webhook:
        await bot.set_webhook(settings.webhook_url, secret_token=settings.webhook_secret)
        logger.info("Webhook - {url}", url=settings.webhook_url)
    else:
        await bot.delete_webhook()
        logger.info("Webhook - Disabled (polling)")

    logger.info("bot started")


async def on_shutdown(bot: Bot) -> None:
    logger.info("bot stopping...")

    await bot.session.close()

    logger.info("bot stopped")


async def prune_rate_limits(rate_limiter: RateLimiter) -> None:
    while True:
        await asyncio.sleep(RATE_LIMIT_PRUNE_SECONDS)
        dropped = rate_limiter.prune()
        if dropped:
            logger.debug("Pruned {count} rate limit entries", count=dropped)


async def main() -> None:
    settings = load_settings()
    setup_logging(settings.log_level, settings.log_path)
    init_engine(settings.database_url)

    bot = create_bot(settings)
    rate_limiter = RateLimiter(
        max_calls=settings.rate_limit_max_requests,
        period_seconds=settings.rate_limit_window_seconds,
    )
    flow = SecretAngelFlow(
        send=make_sender(bot),
        admin_id=settings.admin_telegram_id,
        conversations=ConversationStore(),
        rate_limiter=rate_limiter,
        max_attempts=settings.match_max_attempts,
    )

    dp = create_dispatcher(flow, settings)
    dp.startup.register(on_startup)
    dp.shutdown.register(on_shutdown)

    pruner = asyncio.create_task(prune_rate_limits(rate_limiter))
    try:
        if settings.use_webhook:
            await run_webhook(dp, bot, settings)
        else:
            await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())
    finally:
        pruner.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await pruner


if __name__ == "__main__":
    if getattr(asyncio, "debug", False):
        asyncio.run(main())
    else:
        uvloop.run(main())
