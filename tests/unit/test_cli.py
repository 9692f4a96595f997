"""Tests for CLI module."""

import logging
from pathlib import Path
from unittest.mock import AsyncMock, Mock, patch

import pytest

from ws_endpoint_test.cli import (
    COMMANDLINE_TEST_NAME,
    commandline_test,
    log_results_summary,
    main,
    resolve_tests,
    run,
    tally_status,
)
from ws_endpoint_test.errors import RecordWriteError
from ws_endpoint_test.models.duration import MINUTE
from ws_endpoint_test.scheduler import TestTally
from ws_endpoint_test.transport.config import TransportConfig

TESTS_YAML = """\
- name: echo
  url: ws://localhost:8080/echo
  send_text_message: ping
  expect_messages: 1
- name: feed
  url: wss://example.com/feed
"""


def test_commandline_test() -> None:
    """The ad-hoc test waits long for slow endpoints."""
    test = commandline_test("ws://localhost/ws")

    assert test.name == COMMANDLINE_TEST_NAME
    assert test.url == "ws://localhost/ws"
    assert test.handshake_timeout == 20 * MINUTE
    assert test.message_read_timeout == 10 * MINUTE
    assert test.message_write_timeout == 0
    assert test.sleep == 5 * MINUTE


@pytest.mark.parametrize(
    ("tally", "expected"),
    [
        (TestTally(name="t", runs=2, passed=2), "success"),
        (TestTally(name="t", runs=2, passed=1, failed=1), "failure"),
        (TestTally(name="t", runs=2, passed=1, errors=1), "error"),
        (TestTally(name="t"), "failure"),
    ],
)
def test_tally_status(tally: TestTally, expected: str) -> None:
    """Errors dominate failures, which dominate successes."""
    assert tally_status(tally) == expected


def test_log_results_summary(caplog: pytest.LogCaptureFixture) -> None:
    """Logs one line per test with its symbol and counts."""
    tallies = [
        TestTally(name="echo", runs=3, passed=3),
        TestTally(name="feed", runs=2, passed=1, failed=1),
        TestTally(name="broken", runs=1, errors=1),
    ]

    with caplog.at_level(logging.INFO):
        log_results_summary(logging.getLogger(), tallies)

    assert "Test Results Summary:" in caplog.text
    assert "✅ echo: success (3 run(s), 3 passed, 0 failed, 0 error(s))" in caplog.text
    assert "❌ feed: failure (2 run(s), 1 passed, 1 failed, 0 error(s))" in caplog.text
    assert "❗ broken: error (1 run(s), 0 passed, 0 failed, 1 error(s))" in caplog.text


class TestResolveTests:
    """Tests for resolve_tests function."""

    async def test_url(self) -> None:
        """A url yields the ad-hoc test."""
        tests = await resolve_tests("ws://localhost/ws", None)

        assert [test.name for test in tests] == [COMMANDLINE_TEST_NAME]

    async def test_tests_file(self, tmp_path: Path) -> None:
        """A tests file yields its tests in order."""
        path = tmp_path / "tests.yaml"
        path.write_text(TESTS_YAML)

        tests = await resolve_tests(None, path)

        assert [test.name for test in tests] == ["echo", "feed"]
        assert tests[0].send_text_message == "ping"

    async def test_nothing(self) -> None:
        """No url and no file yield no tests."""
        assert await resolve_tests(None, None) == []


class TestRun:
    """Tests for run function."""

    @pytest.fixture
    def mock_transport(self) -> Mock:
        """Create mock transport."""
        return Mock()

    @pytest.fixture
    def mock_context_manager(self, mock_transport: Mock) -> AsyncMock:
        """Create mock async context manager that yields the transport."""
        cm = AsyncMock()
        cm.__aenter__.return_value = mock_transport
        cm.__aexit__.return_value = None
        return cm

    async def test_rejects_url_and_tests_file(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Returns 1 when both test sources are given."""
        exit_code = await run("ws://localhost/ws", tmp_path / "tests.yaml")

        assert exit_code == 1
        assert "mutually exclusive" in capsys.readouterr().err

    async def test_rejects_missing_tests(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Returns 1 when no tests were given."""
        exit_code = await run(None, None)

        assert exit_code == 1
        assert "no tests found" in capsys.readouterr().err

    async def test_rejects_empty_tests_file(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Returns 1 when the tests file holds an empty list."""
        path = tmp_path / "tests.yaml"
        path.write_text("[]\n")

        exit_code = await run(None, path)

        assert exit_code == 1
        assert "no tests found" in capsys.readouterr().err

    async def test_reports_unreadable_tests_file(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Returns 1 when the tests file cannot be loaded."""
        exit_code = await run(None, tmp_path / "missing.yaml")

        assert exit_code == 1
        assert "error loading tests file" in capsys.readouterr().err

    async def test_reports_invalid_tests_file(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Returns 1 when the tests file does not match the schema."""
        path = tmp_path / "tests.yaml"
        path.write_text("- name: missing-url\n")

        exit_code = await run(None, path)

        assert exit_code == 1
        assert "Invalid test definition schema" in capsys.readouterr().err

    async def test_reports_infinite_duration(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Returns 1 when a duration in the tests file is not finite."""
        path = tmp_path / "tests.yaml"
        path.write_text("- name: a\n  url: ws://x/\n  handshake_timeout: .inf\n")

        exit_code = await run(None, path)

        assert exit_code == 1
        assert "error loading tests file" in capsys.readouterr().err

    async def test_rejects_invalid_transport_config(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Returns 1 when the transport configuration is not valid."""
        exit_code = await run(
            "ws://localhost/ws", None, transport_config_json='{"max_msg_size": "x"}'
        )

        assert exit_code == 1
        assert "invalid transport configuration" in capsys.readouterr().err

    async def test_runs_tests(
        self,
        tmp_path: Path,
        mock_context_manager: AsyncMock,
        mock_transport: Mock,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Runs the loaded tests and logs the summary."""
        path = tmp_path / "tests.yaml"
        path.write_text(TESTS_YAML)
        out_dir = tmp_path / "out" / "records"

        with (
            patch("ws_endpoint_test.cli.AiohttpTransport") as mock_transport_cls,
            patch("ws_endpoint_test.cli.TestScheduler") as mock_scheduler_cls,
            caplog.at_level(logging.INFO),
        ):
            mock_transport_cls.from_config.return_value = mock_context_manager
            mock_scheduler = Mock()
            mock_scheduler.run_tests = AsyncMock(
                return_value=[
                    TestTally(name="echo", runs=2, passed=2),
                    TestTally(name="feed", runs=2, failed=2),
                ]
            )
            mock_scheduler_cls.return_value = mock_scheduler

            exit_code = await run(
                None,
                path,
                out_dir=out_dir,
                runs=2,
                transport_config_json='{"max_msg_size": 1024}',
            )

        assert exit_code == 0
        assert out_dir.is_dir()
        mock_transport_cls.from_config.assert_called_once_with(
            TransportConfig(max_msg_size=1024)
        )
        kwargs = mock_scheduler_cls.call_args.kwargs
        assert kwargs["transport"] is mock_transport
        assert kwargs["runs"] == 2
        assert kwargs["sink"].out_dir == out_dir
        [tests] = mock_scheduler.run_tests.call_args.args
        assert [test.name for test in tests] == ["echo", "feed"]
        assert "✅ echo: success" in caplog.text
        assert "❌ feed: failure" in caplog.text

    async def test_record_write_errors_are_fatal(
        self,
        mock_context_manager: AsyncMock,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Returns 1 when a result record cannot be written."""
        with (
            patch("ws_endpoint_test.cli.AiohttpTransport") as mock_transport_cls,
            patch("ws_endpoint_test.cli.TestScheduler") as mock_scheduler_cls,
        ):
            mock_transport_cls.from_config.return_value = mock_context_manager
            mock_scheduler = Mock()
            mock_scheduler.run_tests = AsyncMock(
                side_effect=RecordWriteError("Cannot write result record x: full")
            )
            mock_scheduler_cls.return_value = mock_scheduler

            exit_code = await run("ws://localhost/ws", None)

        assert exit_code == 1
        assert "Cannot write result record" in caplog.text
        assert "Test Results Summary:" not in caplog.text


class TestMain:
    """Tests for the argument parsing of main."""

    def test_passes_arguments(self, tmp_path: Path) -> None:
        """Parses the flags and exits with the run's exit code."""
        argv = [
            "ws-endpoint-test",
            "-tests",
            str(tmp_path / "tests.yaml"),
            "-dir",
            str(tmp_path),
            "-n",
            "0",
        ]

        with (
            patch("sys.argv", argv),
            patch("ws_endpoint_test.cli.run", new_callable=AsyncMock) as mock_run,
        ):
            mock_run.return_value = 0
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 0
        mock_run.assert_called_once_with(
            url=None,
            tests_file=tmp_path / "tests.yaml",
            out_dir=tmp_path,
            runs=0,
            transport_config_json="{}",
        )

    def test_url_flag(self) -> None:
        """Accepts the dotted url flag."""
        argv = ["ws-endpoint-test", "-test.url", "ws://localhost/ws"]

        with (
            patch("sys.argv", argv),
            patch("ws_endpoint_test.cli.run", new_callable=AsyncMock) as mock_run,
        ):
            mock_run.return_value = 1
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 1
        assert mock_run.call_args.kwargs["url"] == "ws://localhost/ws"
        assert mock_run.call_args.kwargs["runs"] == 1

    def test_rejects_negative_runs(self) -> None:
        """A negative run count is a usage error."""
        with (
            patch("sys.argv", ["ws-endpoint-test", "-n", "-1"]),
            pytest.raises(SystemExit) as exc_info,
        ):
            main()

        assert exc_info.value.code == 2
