"""Root conftest: test environment and a caplog-friendly structlog pipeline."""

from pathlib import Path

import pytest
import structlog
from dotenv import load_dotenv

from geekcraft.logging import _redact_sensitive, _serialize_enums

# AUTH_* defaults for tests (in-memory backend, fast hasher).
load_dotenv(Path(__file__).resolve().parent.parent / ".env.tests")

# Same event processors as setup_logging, minus handlers, so caplog records
# carry the redacted event dict.
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        _serialize_enums,
        _redact_sensitive,
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ],
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=False,
)


@pytest.fixture(autouse=True)
def _clear_log_context():
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
