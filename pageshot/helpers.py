import shutil
import asyncio
import logging

log = logging.getLogger(__name__)


possible_chrome_binaries = ["chromium", "chromium-browser", "chrome", "chrome-browser", "google-chrome"]


def which_chrome():
    """
    Returns the path of the first Chrome/Chromium binary found on PATH, or None.
    """
    for binary in possible_chrome_binaries:
        chrome_path = shutil.which(binary)
        if chrome_path:
            return chrome_path


def get_exception_chain(e):
    """
    Retrieves the full chain of exceptions leading to the given exception.

    Args:
        e (BaseException): The exception for which to get the chain.

    Returns:
        list[BaseException]: List of exceptions in the chain, from the given exception back to the root cause.

    Examples:
        >>> try:
        ...     raise ValueError("This is a value error")
        ... except ValueError as e:
        ...     exc_chain = get_exception_chain(e)
        ...     for exc in exc_chain:
        ...         print(exc)
        This is a value error
    """
    exception_chain = []
    current_exception = e
    while current_exception is not None:
        exception_chain.append(current_exception)
        current_exception = getattr(current_exception, "__context__", None)
    return exception_chain


def in_exception_chain(e, exc_types):
    """
    Given an Exception and a list of Exception types, returns whether any of the specified types are contained anywhere in the Exception chain.

    Args:
        e (BaseException): The exception to check
        exc_types (list[Exception]): Exception types to look for

    Returns:
        bool: Whether any exception in the chain is one of exc_types
    """
    return any(isinstance(_, exc_types) for _ in get_exception_chain(e))


def is_cancellation(e):
    return in_exception_chain(e, (KeyboardInterrupt, asyncio.CancelledError))


def describe_exception(e):
    """
    Human-readable one-liner for an exception, falling back to the class name when the message is empty.

    Examples:
        >>> describe_exception(ValueError("bad value"))
        'bad value'
        >>> describe_exception(ConnectionResetError())
        'ConnectionResetError'
    """
    message = str(e).strip()
    if not message:
        return e.__class__.__name__
    return message


def repr_params(params):
    return f"{', '.join(f'{k}={repr(v)}' for k, v in params.items())}"
