"""
Logging for infx.

Every module logs through the shared loguru ``logger``. A batch of several
hundred requests can emit one warning per retry, so besides the global level
each module can be given its own threshold:

    >>> from infx.utils.logging import setup_logging
    >>> setup_logging("INFO", modules={"infx.rpc.transport": "ERROR"})
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"

# Remove default handler
logger.remove()

_handler_ids: List[int] = []


def _level_filter(level: str, modules: Optional[Mapping[str, str]]) -> Dict[str, Union[str, bool]]:
    # Keys are module name prefixes, "" is the fallback
    levels: Dict[str, Union[str, bool]] = {"": level.upper()}
    for name, module_level in (modules or {}).items():
        levels[name] = module_level.upper()
    return levels


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    modules: Optional[Mapping[str, str]] = None,
    colorize: bool = True,
) -> None:
    """
    Configure log output for infx.

    Handlers installed by an earlier call are replaced; handlers added to
    the loguru logger by the application are left alone.

    Args:
        level: Minimum level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path of a rotating log file.
        modules: Per-module minimum levels, e.g.
            ``{"infx.rpc.transport": "ERROR"}``.
        colorize: Colour console output.

    Example:
        >>> setup_logging(level="DEBUG", log_file="logs/openbis.log")
        >>> logger.info("Listing datasets")
    """
    while _handler_ids:
        logger.remove(_handler_ids.pop())

    levels = _level_filter(level, modules)

    _handler_ids.append(logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=0,
        filter=levels,
        colorize=colorize,
        backtrace=False,
        diagnose=False,
    ))

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        _handler_ids.append(logger.add(
            log_path,
            format=FILE_FORMAT,
            level=0,
            filter=levels,
            rotation="10 MB",
            retention="1 week",
            compression="zip",
        ))

    logger.debug(f"Logging configured: level={level}, file={log_file}, modules={dict(modules or {})}")


# Default configuration (INFO level, console only)
setup_logging(level="INFO")


__all__ = ["logger", "setup_logging"]
