import asyncio
import threading
import time
import sys
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")


async def run(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    text: str = "Working",
    interval: float = 0.1,
    enabled: bool = True,
    **kwargs: Any,
) -> T:
    """
    Awaits func and spins a terminal spinner in a SEPARATE thread until it
    finishes. With enabled=False (no tty, CI logs) it just awaits func.
    """
    if not enabled:
        return await func(*args, **kwargs)

    spinner_chars = "|/-\\"
    stop_event = threading.Event()

    def spinner():
        i = 0
        while not stop_event.is_set():
            frame = spinner_chars[i % len(spinner_chars)]
            sys.stdout.write(f"\r{text} {frame}")
            sys.stdout.flush()
            i += 1
            time.sleep(interval)

    thread = threading.Thread(target=spinner, daemon=True)
    thread.start()

    success = False

    try:
        result = await func(*args, **kwargs)
        success = True
        return result
    finally:
        stop_event.set()
        await asyncio.to_thread(thread.join)

        sys.stdout.write("\r" + " " * (len(text) + 2) + "\r")
        if success:
            sys.stdout.write(f"{text} - done\n")
        else:
            sys.stdout.write(f"{text} - error\n")
        sys.stdout.flush()
