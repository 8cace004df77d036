import logging


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(f"sprint_room.{name}")
    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter("[%(levelname)s] %(name)s: %(message)s")
        handler.setFormatter(fmt)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


def snippet(text: str, n: int = 400) -> str:
    """One-line preview of model output for log lines and trace payloads."""
    return (text or "")[:n].replace("\n", "\\n").replace("\r", "\\r")


"""
Logging setup and it configures:
- Log format
- Log level
- Output destination

The main purpose:
Standardized service logging, one named logger per module.
"""
