"""
Tests for the structlog setup.
"""

import logging

import structlog

from utilities.logger import build_processors, setup_logging


def test_json_renderer_by_default():
    """Test the JSON renderer closes the processor chain."""
    processors = build_processors()
    assert isinstance(processors[-1], structlog.processors.JSONRenderer)


def test_console_renderer():
    """Test the console format swaps the renderer."""
    processors = build_processors(log_format="console")
    assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)


def test_debug_adds_callsite():
    """Test debug mode records call-site parameters."""
    processors = build_processors(debug=True)
    assert any(isinstance(p, structlog.processors.CallsiteParameterAdder) for p in processors)


def test_setup_logging_with_file(tmp_path):
    """Test a file handler is attached and its directory created."""
    log_file = tmp_path / "logs" / "api.log"
    root_logger = logging.getLogger()
    handlers_before = list(root_logger.handlers)

    try:
        setup_logging(log_level="DEBUG", log_format="json", log_file=log_file)

        assert log_file.parent.is_dir()
        added = [h for h in root_logger.handlers if h not in handlers_before]
        assert any(isinstance(h, logging.FileHandler) for h in added)
    finally:
        for handler in list(root_logger.handlers):
            if handler not in handlers_before:
                root_logger.removeHandler(handler)
                handler.close()
        structlog.reset_defaults()
