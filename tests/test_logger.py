import logging

from llmwire.logger import get_logger, setup_logging


class TestLogger:

    def test_namespacing(self):
        assert get_logger().name == "llmwire"
        assert get_logger("transport").name == "llmwire.transport"
        assert get_logger("llmwire.tool_loop").name == "llmwire.tool_loop"

    def test_setup_logging_once(self):
        logger = logging.getLogger("llmwire")
        before = list(logger.handlers)
        try:
            setup_logging(logging.DEBUG)
            setup_logging(logging.DEBUG)
            added = [h for h in logger.handlers if h not in before]
            assert len(added) == 1
            assert logger.level == logging.DEBUG
        finally:
            logger.handlers = before
            logger.setLevel(logging.NOTSET)
