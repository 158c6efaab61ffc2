import logging
from pathlib import Path

LOG_DIR = Path(__file__).parent.parent / "logs"
LOG_FILE = LOG_DIR / "app.log"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

LOG_DIR.mkdir(exist_ok=True)

# Cache for log mode to avoid repeated config reads
_log_mode_cache = None
_log_mode_loading = False


def _get_log_mode():
    """Get log mode from configuration."""
    global _log_mode_cache, _log_mode_loading
    if _log_mode_cache is not None:
        return _log_mode_cache
    if _log_mode_loading:
        # load_config logs through get_logger while it is still running
        return 'info'

    _log_mode_loading = True
    try:
        from changelog_i18n.config import load_config
        log_mode = load_config().get('log_mode', 'info')
        _log_mode_cache = log_mode
        return log_mode
    except Exception:
        return 'info'
    finally:
        _log_mode_loading = False


def _levels_for(log_mode: str):
    if log_mode == 'debug':
        return logging.DEBUG, logging.DEBUG
    if log_mode == 'off':
        # higher than CRITICAL disables everything
        return logging.CRITICAL + 1, logging.CRITICAL + 1
    return logging.INFO, logging.INFO


def _configure(logger: logging.Logger, log_mode: str) -> None:
    logger_level, console_level = _levels_for(log_mode)
    logger.setLevel(logger_level)
    log_format = logging.Formatter(LOG_FORMAT)

    has_file_handler = any(isinstance(h, logging.FileHandler) for h in logger.handlers)
    has_console_handler = any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        for h in logger.handlers
    )

    if log_mode != 'off' and not has_file_handler:
        f_handler = logging.FileHandler(LOG_FILE, encoding='utf-8')
        f_handler.setLevel(logging.DEBUG)
        f_handler.setFormatter(log_format)
        logger.addHandler(f_handler)
    elif log_mode == 'off' and has_file_handler:
        for handler in [h for h in logger.handlers if isinstance(h, logging.FileHandler)]:
            handler.close()
            logger.removeHandler(handler)

    if log_mode != 'off' and not has_console_handler:
        c_handler = logging.StreamHandler()
        c_handler.setFormatter(log_format)
        logger.addHandler(c_handler)

    for handler in logger.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
            handler.setLevel(console_level)


def clear_log_mode_cache():
    """Clear the log mode cache and update all existing loggers (call this when config is updated)."""
    global _log_mode_cache
    _log_mode_cache = None
    log_mode = _get_log_mode()

    # Only loggers with handlers were created by get_logger
    for logger_name in list(logging.Logger.manager.loggerDict.keys()):
        logger = logging.getLogger(logger_name)
        if logger.handlers:
            _configure(logger, log_mode)


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    _configure(logger, _get_log_mode())
    return logger
