import asyncio
import logging
from dataclasses import dataclass

SUBPROCESS_TIMEOUT = 30
NUM_RETRIES = 2

logger = logging.getLogger(__name__)


class SubprocessError(Exception):
    """Exception raised when subprocess execution fails."""

    pass


class SubprocessCrashError(SubprocessError):
    """Exception raised when a subprocess exits with a non-zero exit code.

    Attributes:
        return_code: The non-zero exit code from the subprocess
        stderr: The stderr output from the subprocess
        stdout: The stdout output from the subprocess
    """

    def __init__(self, message: str, return_code: int, stderr: bytes = b"", stdout: bytes = b""):
        super().__init__(message)
        self.return_code = return_code
        self.stderr = stderr
        self.stdout = stdout


@dataclass
class RetryConfig:
    """Configuration for subprocess retry behavior.

    Attributes:
        max_retries: Maximum number of attempts (default: 2)
        base_timeout: Base timeout in seconds, doubles with each retry (default: 30)
    """

    max_retries: int = NUM_RETRIES
    base_timeout: float = SUBPROCESS_TIMEOUT


DEFAULT_RETRY_CONFIG = RetryConfig()


async def run_subprocess(
    cmd: list[str],
    label: str,
    input: bytes | None = None,
    retry_config: RetryConfig | None = None,
    env: dict | None = None,
) -> tuple[bytes, bytes]:
    """Run a command, feeding it `input` on stdin, and retry on timeouts.

    Args:
        cmd: Command and arguments to execute
        label: Short description of the call used in log messages
        input: Bytes written to the subprocess's stdin
        retry_config: Configuration for retry behavior. If None, uses defaults.
        env: Environment variables for the subprocess. If None, inherits parent env.

    Returns:
        Tuple of (stdout, stderr)

    Raises:
        SubprocessCrashError: If the subprocess exits with a non-zero code
        SubprocessError: If the command cannot be started or times out on
            every attempt
    """
    config = retry_config or DEFAULT_RETRY_CONFIG
    last_error: Exception | None = None

    for iteration in range(1, config.max_retries + 1):
        process = None
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE if input is not None else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
            logger.debug(f"{label}:Communicating with subprocess {process.pid}")

            # Exponential timeout backoff
            timeout = config.base_timeout * 2 ** (iteration - 1)
            stdout, stderr = await asyncio.wait_for(process.communicate(input), timeout)

            assert process.returncode is not None
            if process.returncode != 0:
                raise SubprocessCrashError(
                    f"{label}:Command exited with code {process.returncode}\n"
                    f"Command: {' '.join(cmd)}\n"
                    f"Stderr: {stderr.decode(errors='replace')[:1000]}",
                    return_code=process.returncode,
                    stderr=stderr,
                    stdout=stdout,
                )
            return stdout, stderr

        except asyncio.TimeoutError as e:
            last_error = e
            logger.warning(
                f"{label}:Subprocess timeout on attempt {iteration}/{config.max_retries}"
            )
            await try_to_terminate_process(label, process)

        except (FileNotFoundError, PermissionError) as e:
            raise SubprocessError(
                f"{label}:Cannot run command: {e}\nCommand: {' '.join(cmd)}"
            ) from e

    raise SubprocessError(
        f"{label}:Subprocess failed after {config.max_retries} attempts\n"
        f"Command: {' '.join(cmd)}\n"
        f"Last error: {last_error!r}"
    )


async def try_to_terminate_process(label, process):
    """Attempt to gracefully terminate a subprocess, then force kill if needed."""
    if process is None:
        return
    try:
        process.terminate()
        await asyncio.sleep(0.5)

        if process.returncode is None:
            process.kill()
            logger.debug(f"{label}:Process force killed")

    except ProcessLookupError:
        logger.debug(f"{label}:Process already terminated")
