import sys

import pytest

from courses.infrastructure.services.subprocess_tools import (
    RetryConfig,
    SubprocessCrashError,
    SubprocessError,
    run_subprocess,
)


@pytest.mark.asyncio
async def test_input_is_passed_on_stdin():
    stdout, stderr = await run_subprocess(
        [sys.executable, "-c", "import sys; print(sys.stdin.read().upper())"],
        "upper",
        input=b"x^2",
    )

    assert stdout.strip() == b"X^2"
    assert stderr == b""


@pytest.mark.asyncio
async def test_non_zero_exit_code():
    with pytest.raises(SubprocessCrashError) as exc_info:
        await run_subprocess(
            [sys.executable, "-c", "import sys; sys.stderr.write('bad input'); sys.exit(3)"],
            "crash",
        )

    assert exc_info.value.return_code == 3
    assert exc_info.value.stderr == b"bad input"
    assert "crash:Command exited with code 3" in str(exc_info.value)


@pytest.mark.asyncio
async def test_missing_executable():
    with pytest.raises(SubprocessError, match="Cannot run command"):
        await run_subprocess(["courses-no-such-program-xyz"], "missing")


@pytest.mark.asyncio
async def test_timeout_is_retried_and_reported():
    config = RetryConfig(max_retries=2, base_timeout=0.1)

    with pytest.raises(SubprocessError, match="failed after 2 attempts") as exc_info:
        await run_subprocess(
            [sys.executable, "-c", "import time; time.sleep(5)"],
            "slow",
            retry_config=config,
        )

    assert not isinstance(exc_info.value, SubprocessCrashError)
