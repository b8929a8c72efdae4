import json
import logging

from logger import LogManager


def read_lines(path):
    with open(path, encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


def test_structured_messages_are_written_as_json(tmp_path):
    logger = LogManager("gitgauge-test", log_dir=str(tmp_path)).logger

    logger.info({"message": "Fetched issues", "repository": "octo/demo", "count": 3})
    logger.error("plain failure")
    for handler in logger.handlers:
        handler.flush()

    combined = read_lines(tmp_path / "combined.log")
    assert combined[0]["message"] == "Fetched issues"
    assert combined[0]["repository"] == "octo/demo"
    assert combined[0]["level"] == "info"
    assert combined[0]["service"] == "gitgauge-test"

    errors = read_lines(tmp_path / "error.log")
    assert [entry["message"] for entry in errors] == ["plain failure"]


def test_rebuilding_does_not_stack_handlers(tmp_path):
    LogManager("gitgauge-rebuild", log_dir=str(tmp_path))
    logger = LogManager(
        "gitgauge-rebuild", log_dir=str(tmp_path), development=True
    ).logger

    assert len(logger.handlers) == 3
    assert any(type(h) is logging.StreamHandler for h in logger.handlers)
