"""Loading of WebSocket test definitions from YAML tests files."""

import asyncio
from collections.abc import Sequence
from pathlib import Path

import yaml
from pydantic import TypeAdapter, ValidationError

from ws_endpoint_test.models.definition import WebSocketTest

_TESTS_FILE = TypeAdapter(list[WebSocketTest])


async def load_tests_file(path: Path) -> Sequence[WebSocketTest]:
    """Load and validate a tests file.

    The file holds a YAML (or JSON) list of test definitions.

    Args:
        path: Path to the tests file

    Returns:
        The test definitions in file order

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is empty, is not valid YAML or does not match
            the test definition schema

    """
    if not path.is_file():
        raise FileNotFoundError(f"Test file not found: {path}")

    content = await asyncio.to_thread(path.read_text, encoding="utf-8")

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        raise ValueError(f"Empty test file: {path}")

    try:
        return _TESTS_FILE.validate_python(data)
    except ValidationError as e:
        raise ValueError(f"Invalid test definition schema in {path}: {e}") from e
