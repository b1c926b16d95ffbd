from aiogram import Router, types
from aiogram.filters import Command

from secret_angel.bot.utils import forward_command
from secret_angel.services.flow import SecretAngelFlow

router = Router()


@router.message(Command("participants"))
async def participants_command_handler(message: types.Message, flow: SecretAngelFlow) -> None:
    await forward_command(message, flow, "participants")


@router.message(Command("creategroups"))
async def create_groups_command_handler(message: types.Message, flow: SecretAngelFlow) -> None:
    await forward_command(message, flow, "creategroups")


@router.message(Command("cleardata"))
async def clear_data_command_handler(message: types.Message, flow: SecretAngelFlow) -> None:
    await forward_command(message, flow, "cleardata")
