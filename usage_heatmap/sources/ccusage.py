"""
Usage fetcher.

Runs the usage-reporting command-line tool and decodes its JSON report.
"""

import json
import logging
import subprocess
from typing import Any, Dict, Sequence

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = ("npx", "ccusage@latest", "--json")

# Answers the tool's "Ok to proceed?" install prompt
PROMPT_ANSWER = "y\n"


class UsageFetchError(Exception):
    """Raised when raw usage data cannot be obtained or decoded."""


def fetch_usage(
    command: Sequence[str] = DEFAULT_COMMAND,
    timeout: float = 300.0
) -> Dict[str, Any]:
    """Run the usage tool and return its decoded JSON report.

    The tool may print progress or install notices before the report, so
    everything before the first ``{`` is discarded.

    Args:
        command: Command line to execute
        timeout: Seconds to wait for the tool

    Returns:
        Decoded report, normally of the form ``{"daily": [...]}``

    Raises:
        UsageFetchError: If the tool is missing, fails, times out or prints no JSON
    """
    logger.info("Fetching usage with: %s", " ".join(command))
    try:
        result = subprocess.run(
            list(command),
            input=PROMPT_ANSWER,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            timeout=timeout,
            check=True,
        )
    except FileNotFoundError as e:
        raise UsageFetchError(f"Usage tool not found: {command[0]}") from e
    except subprocess.TimeoutExpired as e:
        raise UsageFetchError(f"Usage tool timed out after {timeout:g}s") from e
    except subprocess.CalledProcessError as e:
        raise UsageFetchError(f"Usage tool exited with status {e.returncode}") from e

    return parse_report(result.stdout)


def parse_report(output: str) -> Dict[str, Any]:
    """Extract the JSON report from the tool's output.

    Raises:
        UsageFetchError: If no JSON object can be decoded
    """
    start = output.find("{")
    if start == -1:
        raise UsageFetchError("No JSON found in usage tool output")
    try:
        report = json.loads(output[start:])
    except json.JSONDecodeError as e:
        raise UsageFetchError(f"Invalid JSON in usage tool output: {e}") from e
    if not isinstance(report, dict):
        raise UsageFetchError("Usage tool output is not a JSON object")
    return report
