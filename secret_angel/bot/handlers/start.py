from aiogram import Router, types
from aiogram.filters import Command, CommandStart

from secret_angel.bot.utils import forward_command
from secret_angel.services.flow import SecretAngelFlow

router = Router()


@router.message(CommandStart())
async def command_start_handler(message: types.Message, flow: SecretAngelFlow) -> None:
    await forward_command(message, flow, "start")


@router.message(Command("register"))
async def register_command_handler(message: types.Message, flow: SecretAngelFlow) -> None:
    await forward_command(message, flow, "register")


@router.message(Command("myassignment"))
async def my_assignment_command_handler(message: types.Message, flow: SecretAngelFlow) -> None:
    await forward_command(message, flow, "myassignment")
