import functools
import asyncio


def async_click(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        return asyncio.run(func(*args, **kwargs))
    return wrapper


def env_flag(value, default: bool = False) -> bool:
    """
    Interprets an environment-style flag ("1", "true", "yes", "on").
    None or empty string gives the default.
    """
    if value is None or str(value).strip() == "":
        return default
    return str(value).strip().lower() in ("1", "true", "yes", "on")
