import logging
from pathlib import Path

from appdist.foundation.fs import write_text
from appdist.foundation.logging_utils import setup_build_logger


def test_writes_unicode_text_with_utf8_encoding(tmp_path: Path):
    unicode_text = "Packaging… → café"
    path = tmp_path / "nested" / "out.txt"

    write_text(str(path), unicode_text)

    assert path.read_text(encoding="utf-8") == unicode_text


def test_build_logger_writes_debug_to_file(tmp_path: Path):
    logger, log_file = setup_build_logger(str(tmp_path / "logs"), "build_test")
    try:
        logger.debug("Step: build/copy_emoji")
        for handler in logger.handlers:
            handler.flush()

        assert log_file == str(tmp_path / "logs" / "build_test_build.log")
        content = Path(log_file).read_text(encoding="utf-8")
        assert "Operational logging initialized for build build_test" in content
        assert "| DEBUG | Step: build/copy_emoji" in content
        assert logger.propagate is False
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


def test_build_logger_without_log_dir_has_no_file_handler():
    logger, log_file = setup_build_logger(None, "build_stream_only")
    assert log_file is None
    assert not any(isinstance(h, logging.FileHandler) for h in logger.handlers)
