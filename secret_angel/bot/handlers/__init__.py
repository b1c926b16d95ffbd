from aiogram import Router

from secret_angel.bot.handlers import admin, dialog, start

router = Router()
router.include_router(start.router)
router.include_router(admin.router)
router.include_router(dialog.router)
