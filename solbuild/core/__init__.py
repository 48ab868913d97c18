from .logging import configure_logging, get_logger, set_debug
