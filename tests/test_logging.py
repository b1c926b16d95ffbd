from loguru import logger

from secret_angel.core.logging import setup_logging


def test_file_sink_records_bound_context(tmp_path):
    log_path = tmp_path / "logs" / "angel.log"
    setup_logging("WARNING", str(log_path))
    try:
        logger.bind(chat_id=5, user_id=7).info("Participant registered")
        logger.debug("Plain {}", "line")
    finally:
        logger.remove()

    lines = log_path.read_text(encoding="utf-8").splitlines()
    assert lines[0].endswith("| Participant registered | chat_id=5 user_id=7")
    assert "| INFO |" in lines[0]
    assert lines[1].endswith("| Plain line")
