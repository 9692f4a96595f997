"""Result records and reporting of finished runs."""

import asyncio
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from ws_endpoint_test.errors import RecordWriteError
from ws_endpoint_test.models.result import TestResult

log = logging.getLogger(__name__)


def encode_record(result: TestResult) -> str:
    """Encode a result as an indented JSON record."""
    return result.model_dump_json(indent=2)


def decode_record(data: str | bytes) -> TestResult:
    """Decode a JSON record produced by ``encode_record``."""
    return TestResult.model_validate_json(data)


def format_timestamp(moment: datetime) -> str:
    """Format a start time for file names, e.g. ``2024-05-01__130502.25``."""
    text = moment.strftime("%Y-%m-%d__%H%M%S")
    if moment.microsecond:
        text += f".{moment.microsecond:06d}".rstrip("0")
    return text


def record_filename(result: TestResult) -> str:
    """Return ``<test-name>__<start-timestamp>.json`` for a result."""
    name = result.test.name.replace("/", "_")
    return f"{name}__{format_timestamp(result.started_at)}.json"


def write_record(result: TestResult, directory: Path) -> Path:
    """Write the record of a result into ``directory``.

    Raises:
        RecordWriteError: If the file cannot be written

    """
    path = directory / record_filename(result)
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with open(fd, "w", encoding="utf-8") as f:
            f.write(encode_record(result))
    except OSError as e:
        raise RecordWriteError(f"Cannot write result record {path}: {e}") from e
    return path


@dataclass(frozen=True, kw_only=True)
class ResultReporter:
    """Logs every finished run and optionally writes its record to disk."""

    out_dir: Path | None = None

    async def __call__(self, result: TestResult) -> None:
        """Report a finished run."""
        success = result.is_success()
        if not success:
            log.warning("TEST UNSUCCESSFUL: %s (run %s)", result.test.name, result.id)

        if self.out_dir is not None:
            path = await asyncio.to_thread(write_record, result, self.out_dir)
            log.info("Result record written to %s", path)

        log.info("%s %s", success, encode_record(result))
