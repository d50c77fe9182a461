import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
HANDLER_NAME = "credential-service-console"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a console handler to the root logger once and set its level."""

    root = logging.getLogger()
    root.setLevel(level)

    # Prevent adding multiple handlers if called more than once
    if not any(h.get_name() == HANDLER_NAME for h in root.handlers):
        handler = logging.StreamHandler()
        handler.set_name(HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    return root
