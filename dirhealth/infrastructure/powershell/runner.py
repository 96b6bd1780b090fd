"""PowerShell subprocess runner with JSON output."""

from __future__ import annotations

import asyncio
import contextlib
import json
import os
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from dirhealth.domain.entities.directory import Credentials
from dirhealth.domain.entities.errors import ProbeExecutionError, ProbeTimeoutError
from dirhealth.shared import get_logger

logger = get_logger(__name__)

TARGET_VARIABLE = "DIRHEALTH_TARGET"
ARGUMENTS_VARIABLE = "DIRHEALTH_ARGUMENTS"
USERNAME_VARIABLE = "DIRHEALTH_USERNAME"
PASSWORD_VARIABLE = "DIRHEALTH_PASSWORD"

# Target, arguments and credentials reach the script through the child
# environment only, never through the command line.
SCRIPT_PRELUDE = """
$ErrorActionPreference = 'Stop'
$ProgressPreference = 'SilentlyContinue'
$Target = $env:DIRHEALTH_TARGET
$Arguments = $null
if ($env:DIRHEALTH_ARGUMENTS) {
    $Arguments = $env:DIRHEALTH_ARGUMENTS | ConvertFrom-Json
}
$Remote = @{}
if ($env:DIRHEALTH_USERNAME) {
    $secure = ConvertTo-SecureString $env:DIRHEALTH_PASSWORD -AsPlainText -Force
    $Remote.Credential = New-Object System.Management.Automation.PSCredential(
        $env:DIRHEALTH_USERNAME, $secure)
}
function ConvertTo-IsoDate($value) {
    if ($value) { ([datetime]$value).ToUniversalTime().ToString('o') } else { $null }
}
"""

_MS_DATE = re.compile(r"^/Date\((-?\d+)(?:[+-]\d{4})?\)/$")
_FRACTION = re.compile(r"(\.\d{6})\d+")
_STDERR_TAIL = 500


def as_list(value: Any) -> List[Any]:
    """Normalize ConvertTo-Json output: null, a single object, or an array."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 or ``/Date(ms)/`` timestamp into an aware datetime."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        match = _MS_DATE.match(text)
        if match:
            return datetime.fromtimestamp(int(match.group(1)) / 1000, tz=timezone.utc)
        text = _FRACTION.sub(r"\1", text)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _kill(process: asyncio.subprocess.Process) -> None:
    with contextlib.suppress(ProcessLookupError):
        process.kill()


class PowerShellRunner:
    """Runs a PowerShell script and decodes its JSON standard output."""

    def __init__(
        self,
        executable: str = "pwsh",
        extra_arguments: Sequence[str] = ("-NoProfile", "-NonInteractive"),
    ) -> None:
        self._executable = executable
        self._extra_arguments = tuple(extra_arguments)

    def build_environment(
        self,
        *,
        target: Optional[str] = None,
        arguments: Optional[Mapping[str, Any]] = None,
        credentials: Optional[Credentials] = None,
    ) -> Dict[str, str]:
        environment = dict(os.environ)
        for name in (
            TARGET_VARIABLE,
            ARGUMENTS_VARIABLE,
            USERNAME_VARIABLE,
            PASSWORD_VARIABLE,
        ):
            environment.pop(name, None)
        if target:
            environment[TARGET_VARIABLE] = target
        if arguments:
            environment[ARGUMENTS_VARIABLE] = json.dumps(dict(arguments))
        if credentials is not None:
            environment[USERNAME_VARIABLE] = credentials.username
            environment[PASSWORD_VARIABLE] = credentials.password
        return environment

    async def run(
        self,
        script: str,
        *,
        operation: str,
        timeout: float,
        target: Optional[str] = None,
        arguments: Optional[Mapping[str, Any]] = None,
        credentials: Optional[Credentials] = None,
    ) -> Any:
        """
        Run ``script`` and return its decoded JSON output.

        Args:
            script: Script body; the prelude defines $Target, $Arguments,
                $Remote (credential splat) and ConvertTo-IsoDate
            operation: Short name used in errors and logs
            timeout: Seconds before the process is killed

        Returns:
            The decoded JSON value, or None when the script printed nothing

        Raises:
            ProbeTimeoutError: If the process does not finish in time
            ProbeExecutionError: If the process cannot start, exits non-zero
                or prints invalid JSON
        """
        command = [
            self._executable,
            *self._extra_arguments,
            "-Command",
            SCRIPT_PRELUDE + script,
        ]
        environment = self.build_environment(
            target=target, arguments=arguments, credentials=credentials
        )

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=environment,
            )
        except (FileNotFoundError, PermissionError) as exc:
            raise ProbeExecutionError(
                f"Cannot start PowerShell executable '{self._executable}'",
                {"operation": operation, "error": str(exc)},
            ) from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=timeout
            )
        except asyncio.CancelledError:
            _kill(process)
            raise
        except asyncio.TimeoutError as exc:
            _kill(process)
            await process.wait()
            logger.warning(
                "powershell.timeout",
                operation=operation,
                target=target,
                timeout=timeout,
            )
            raise ProbeTimeoutError(operation, timeout) from exc

        error_text = stderr.decode("utf-8", errors="replace").strip()
        if process.returncode != 0:
            logger.warning(
                "powershell.exit_nonzero",
                operation=operation,
                target=target,
                returncode=process.returncode,
                stderr=error_text[-_STDERR_TAIL:],
            )
            detail = error_text[-_STDERR_TAIL:] or "no error output"
            raise ProbeExecutionError(
                f"{operation} failed: {detail}",
                {"operation": operation, "returncode": process.returncode},
            )

        output = stdout.decode("utf-8", errors="replace").strip()
        if not output:
            return None
        try:
            return json.loads(output)
        except json.JSONDecodeError as exc:
            raise ProbeExecutionError(
                f"{operation} returned output that is not JSON",
                {"operation": operation, "output": output[:_STDERR_TAIL]},
            ) from exc
