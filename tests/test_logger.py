import logging

from eventflow.utils.logger import get_logger, setup_logger


class TestSetupLogger:
    def test_file_output(self, tmp_path):
        log_file = tmp_path / "logs" / "api.log"
        logger = setup_logger("eventflow.test.file", log_level="debug", log_file=str(log_file))

        logger.debug("📦 hello")
        for handler in logger.handlers:
            handler.flush()

        assert logger.level == logging.DEBUG
        assert "📦 hello" in log_file.read_text(encoding="utf-8")

    def test_repeated_setup_does_not_stack_handlers(self):
        setup_logger("eventflow.test.repeat")
        logger = setup_logger("eventflow.test.repeat")

        assert len(logger.handlers) == 1

    def test_unknown_level_falls_back_to_info(self):
        logger = setup_logger("eventflow.test.level", log_level="chatty")

        assert logger.level == logging.INFO

    def test_libraries_are_quieted(self):
        setup_logger("eventflow.test.quiet", quiet=("eventflow.test.noisy",))

        assert get_logger("eventflow.test.noisy").level == logging.WARNING
