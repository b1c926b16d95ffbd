from aiogram import Router, types

from secret_angel.bot.utils import log_handler_exception
from secret_angel.services.flow import SecretAngelFlow

router = Router()


@router.message()
async def conversation_handler(message: types.Message, flow: SecretAngelFlow) -> None:
    if message.from_user is None:
        return

    try:
        await flow.handle_message(message.chat.id, message.from_user.id, message.text)
    except Exception as exc:
        log_handler_exception("message", message.from_user.id, message.chat.id, exc)
        await message.answer("Something went wrong. Please try again later.")
