from __future__ import annotations

import asyncio

from aiogram import Bot, Dispatcher
from aiogram.webhook.aiohttp_server import SimpleRequestHandler, setup_application
from aiohttp import web
from loguru import logger

from secret_angel.core.config import Settings


async def health_handler(request: web.Request) -> web.Response:
    return web.Response(text="Secret Angel Bot is running!")


def build_web_app(dp: Dispatcher, bot: Bot, settings: Settings) -> web.Application:
    app = web.Application()
    app.router.add_get("/", health_handler)
    SimpleRequestHandler(
        dispatcher=dp,
        bot=bot,
        secret_token=settings.webhook_secret,
    ).register(app, path=settings.webhook_path)
    setup_application(app, dp, bot=bot)
    return app


async def run_webhook(dp: Dispatcher, bot: Bot, settings: Settings) -> None:
    app = build_web_app(dp, bot, settings)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host=settings.host, port=settings.port)
    await site.start()
    logger.info("Webhook server listening on {host}:{port}", host=settings.host, port=settings.port)

    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()
