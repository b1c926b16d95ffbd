from aiogram import Bot, Dispatcher

from secret_angel.bot.handlers import router as handlers_router
from secret_angel.core.config import Settings
from secret_angel.services.flow import SecretAngelFlow


def create_bot(settings: Settings) -> Bot:
    return Bot(token=settings.bot_token)


def create_dispatcher(flow: SecretAngelFlow, settings: Settings) -> Dispatcher:
    dp = Dispatcher(flow=flow, settings=settings)
    dp.include_router(handlers_router)
    return dp
