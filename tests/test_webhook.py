import pytest
from aiohttp.test_utils import TestClient, TestServer

from secret_angel.bot import create_bot, create_dispatcher
from secret_angel.bot.webhook import build_web_app
from secret_angel.core.config import Settings
from secret_angel.services.flow import SecretAngelFlow


async def _discard(chat_id, text, rich=False):
    return None


@pytest.fixture(scope="module")
def settings():
    return Settings(
        bot_token="42:TEST-TOKEN",
        database_url="sqlite://",
        admin_telegram_id=1,
        log_level="INFO",
        log_path="secret_angel.log",
        rate_limit_max_requests=10,
        rate_limit_window_seconds=60,
        match_max_attempts=100,
        webhook_base_url="https://angels.example.com",
        webhook_path="/telegram/hook",
        webhook_secret="s3cret",
        host="127.0.0.1",
        port=0,
    )


@pytest.fixture(scope="module")
def web_app(settings):
    bot = create_bot(settings)
    dp = create_dispatcher(SecretAngelFlow(_discard, settings.admin_telegram_id), settings)
    return build_web_app(dp, bot, settings)


def test_webhook_route_uses_configured_path(web_app, settings):
    paths = {route.resource.canonical for route in web_app.router.routes() if route.method == "POST"}
    assert paths == {settings.webhook_path}


@pytest.mark.asyncio(loop_scope="module")
async def test_health_check(web_app):
    async with TestClient(TestServer(web_app)) as client:
        response = await client.get("/")
        assert response.status == 200
        assert await response.text() == "Secret Angel Bot is running!"


@pytest.mark.asyncio(loop_scope="module")
async def test_wrong_secret_token_is_rejected(web_app, settings):
    async with TestClient(TestServer(web_app)) as client:
        response = await client.post(
            settings.webhook_path,
            json={"update_id": 1},
            headers={"X-Telegram-Bot-Api-Secret-Token": "wrong"},
        )
        assert response.status == 401

        response = await client.post(settings.webhook_path, json={"update_id": 1})
        assert response.status == 401
