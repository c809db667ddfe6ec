"""Runtime entry points: logging setup and lifecycle execution with exit codes."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from pydantic import BaseModel

from .client import ComputeClient
from .config import Config
from .errors import ConvergeError, ResourceNotFound, RollbackError
from .security import SecretlessViolationError
from .spec_loader import SpecLoadError

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_SECURITY = 2
EXIT_NOT_FOUND = 3

# Attributes every LogRecord carries; anything else arrived through ``extra``
_STANDARD_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.NOTSET, "", 0, "", None, None))
) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with ``extra`` fields at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, UTC)
        entry = {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_RECORD_ATTRS
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level: int = logging.INFO) -> None:
    """Send JSON logs to stderr; stdout is reserved for command output.

    Calling it again replaces the previous JSON handler instead of adding one.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if isinstance(handler.formatter, JsonFormatter):
            root_logger.removeHandler(handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(JsonFormatter())
    root_logger.addHandler(stderr_handler)
    root_logger.setLevel(level)

    # Pipeline request/response chatter
    for noisy in ("azure", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


Operation = Callable[[ComputeClient], Awaitable[BaseModel | None]]


async def run_operation(
    config: Config,
    operation: Operation,
    echo: Callable[[str], None],
    client: ComputeClient | None = None,
) -> int:
    """Run one lifecycle operation and map its outcome to an exit code.

    The converged resource (if any) is written through ``echo`` as JSON.

    Returns:
        EXIT_OK, EXIT_FAILED, EXIT_SECURITY or EXIT_NOT_FOUND.
    """
    logger = logging.getLogger(__name__)

    try:
        if client is None:
            client = ComputeClient.from_config(config)
        result = await operation(client)
    except SecretlessViolationError as e:
        logger.critical(
            "Aborting: secret-bearing variables in the environment",
            extra={"env_vars": e.env_vars},
        )
        return EXIT_SECURITY
    except SpecLoadError as e:
        logger.error("Could not load resource definition", extra={"error": str(e)})
        return EXIT_FAILED
    except ResourceNotFound as e:
        logger.error("No such resource", extra={"path": e.path})
        return EXIT_NOT_FOUND
    except RollbackError as e:
        logger.error(
            "Create failed and the compensating delete failed too",
            extra={"error": str(e.original), "rollback_error": str(e.rollback_error)},
        )
        return EXIT_FAILED
    except ConvergeError as e:
        logger.error(
            "Resource operation failed",
            extra={"error": str(e), "error_type": type(e).__name__},
        )
        return EXIT_FAILED
    except Exception:
        logger.exception("Unexpected error during %s", getattr(operation, "__name__", "operation"))
        return EXIT_FAILED

    if result is not None:
        echo(result.model_dump_json(indent=2, exclude_none=True))
    return EXIT_OK
