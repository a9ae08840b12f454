import functools
import time
from typing import Callable, TypeVar

import debugpy

F = TypeVar('F', bound=Callable)


def _debug(app, message: str, level: str) -> None:
    """Route DEBUG output through the app's own ``log_debug`` toggle when it has one."""
    if level == "DEBUG" and hasattr(app, "log_debug"):
        app.log_debug(message)
    else:
        app.log(message, level=level)


def debugpy_init(arg: str = "debugpy_port", wait: bool = False):
    """Decorator that starts a debugpy listener before ``initialize`` runs.

    The port is read from the app's ``args`` so the listener is only opened
    when the app is configured for it.

    Args:
        arg: Name of the apps.yaml argument holding the port.
        wait: Block until a client attaches.
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            port = (getattr(self, "args", None) or {}).get(arg)
            # debugpy can only listen once per process
            if port and not getattr(debugpy_init, "_listening", False):
                try:
                    debugpy.listen(("0.0.0.0", int(port)))
                    self.log(f"Debugpy: listening on port {port}")
                    if wait:
                        self.log("Debugpy: waiting for client to connect")
                        debugpy.wait_for_client()
                except RuntimeError:
                    self.log("Debugpy is already initialized.")
                debugpy_init._listening = True
            return func(self, *args, **kwargs)
        return wrapper
    return decorator


def log_call(*decorator_args, **decorator_kwargs):
    """Decorator to log entry and exit of a method.

    Usable bare (``@log_call``) or with a level (``@log_call(level="INFO")``).
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            level = decorator_kwargs.get('level', "DEBUG")
            _debug(self, f"Calling '{func.__name__}'", level)
            result = func(self, *args, **kwargs)
            _debug(self, f"Done '{func.__name__}'", level)
            return result
        return wrapper

    if len(decorator_args) == 1 and callable(decorator_args[0]):
        return decorator(decorator_args[0])
    return decorator


def requires_active_listener(func):
    """Skip the callback while the app is stopped or suspended."""
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        if not getattr(self, "active", True):
            self.log(f"Skipped '{func.__name__}' because listener is suspended.", level="DEBUG")
            return
        return func(self, *args, **kwargs)
    return wrapper


def handle_errors(*decorator_args, **decorator_kwargs):
    """Decorator to catch and log exceptions in app methods.

    Args:
        *decorator_args: Variable positional arguments
        **decorator_kwargs: Variable keyword arguments
            level: Log level for errors (default: "ERROR")
            return_value: Value to return on error (default: None)
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except Exception as e:
                level = decorator_kwargs.get('level', "ERROR")
                return_value = decorator_kwargs.get('return_value', None)
                self.log(f"Exception in '{func.__name__}': {e}", level=level)
                return return_value
        return wrapper

    # Handle case where decorator is used without arguments
    if len(decorator_args) == 1 and callable(decorator_args[0]):
        return decorator(decorator_args[0])
    return decorator


def time_it(func):
    """Log time taken by a method."""
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        start = time.monotonic()
        result = func(self, *args, **kwargs)
        elapsed = time.monotonic() - start
        _debug(self, f"'{func.__name__}' took {elapsed:.3f} seconds", "DEBUG")
        return result
    return wrapper
