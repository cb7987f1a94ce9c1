import logging
import signal
import sys
import threading
from contextlib import contextmanager

import click
from pyhanko.config.errors import ConfigurationError
from pyhanko.config.logging import LogConfig, StdLogOutput
from pyhanko.pdf_utils import misc

from seamstamp.cli.utils import logger
from seamstamp.errors import (
    ErrorKind,
    StampingCancelled,
    StampingConfigurationError,
    StampingError,
)


class NoStackTraceFormatter(logging.Formatter):
    def formatException(self, ei) -> str:
        return ""  # pragma: nocover


LOG_FORMAT_STRING = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def logging_setup(log_configs, verbose: bool):
    log_config: LogConfig
    for module, log_config in log_configs.items():
        cur_logger = logging.getLogger(module)
        cur_logger.setLevel(log_config.level)
        handler: logging.StreamHandler
        if isinstance(log_config.output, StdLogOutput):
            if log_config.output == StdLogOutput.STDOUT:
                handler = logging.StreamHandler(sys.stdout)
            else:
                handler = logging.StreamHandler()
            # when logging to the console, don't output stack traces
            # unless in verbose mode
            if verbose:
                formatter = logging.Formatter(LOG_FORMAT_STRING)
            else:
                formatter = NoStackTraceFormatter(LOG_FORMAT_STRING)
        else:
            handler = logging.FileHandler(log_config.output)
            formatter = logging.Formatter(LOG_FORMAT_STRING)
        handler.setFormatter(formatter)
        cur_logger.addHandler(handler)


_KIND_LABELS = {
    ErrorKind.RESOURCE: "Resource error",
    ErrorKind.DOCUMENT: "Document error",
    ErrorKind.SIGNING: "Signing error",
    ErrorKind.CONTRACT: "Internal error",
}


@contextmanager
def seamstamp_exception_manager():
    msg = exception = None
    try:
        yield
    except click.ClickException:
        raise
    except StampingCancelled as e:
        exception = e
        msg = e.msg
    except StampingConfigurationError as e:
        exception = e
        msg = f"Configuration error: {e.msg}"
    except StampingError as e:
        exception = e
        msg = f"{_KIND_LABELS.get(e.kind, 'Error')}: {e.msg}"
    except ConfigurationError as e:
        exception = e
        msg = f"Configuration error: {e}"
    except misc.PdfReadError as e:
        exception = e
        msg = f"Failed to read PDF file: {e.msg}"
    except misc.PdfWriteError as e:
        exception = e
        msg = f"Failed to write PDF file: {e.msg}"
    except Exception as e:
        exception = e
        msg = "Generic processing error."

    if exception is not None:
        logger.error(msg, exc_info=exception)
        raise click.ClickException(msg)


@contextmanager
def cancel_on_interrupt(cancel: threading.Event):
    """
    Set ``cancel`` when the process receives SIGINT, for the duration of
    the ``with`` block.
    Signal handlers can only be installed from the main thread; elsewhere,
    this does nothing.
    """
    if threading.current_thread() is not threading.main_thread():
        yield cancel
        return

    def _handler(signum, frame):
        logger.warning("Interrupt received, cancelling after current step.")
        cancel.set()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield cancel
    finally:
        signal.signal(signal.SIGINT, previous)


DEFAULT_CONFIG_FILE = 'seamstamp.yml'
