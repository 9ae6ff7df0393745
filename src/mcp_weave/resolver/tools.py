"""Resolve a catalog STDIO tool to the command/args an agent should launch.

Resolution order: detect on PATH, install when missing (unless disabled),
pick the default invocation, health-check it when it is the tool's own
binary, and fall back to a runner-based discovery command if that fails.
"""

from __future__ import annotations

import logging
import shutil
import sys
from collections.abc import Iterable

from mcp_weave.errors import InstallError, ToolResolutionError
from mcp_weave.models import DetectResult, HealthResult, Invocation, ToolEntry, ToolInstaller
from mcp_weave.resolver.subprocess import run_command, split_command

logger = logging.getLogger(__name__)

INSTALL_MANAGERS = ("npm", "brew", "pipx", "cargo", "auto")

_INSTALL_TIMEOUT = 300.0
_HEALTH_TIMEOUT = 30.0


def current_platform() -> str:
    """Installer key for the running OS: ``linux``, ``macos`` or ``windows``."""
    if sys.platform == "win32":
        return "windows"
    if sys.platform == "darwin":
        return "macos"
    return "linux"


def _head(command: str) -> str:
    parts = split_command(command)
    return parts[0] if parts else ""


def detect_tool(tool: ToolEntry) -> DetectResult:
    """Is the tool runnable? Prefers ``bin``, then any discovery command's head."""
    if tool.bin and shutil.which(tool.bin):
        return DetectResult(installed=True, command=tool.bin)
    for command in tool.discovery_commands:
        head = _head(command)
        if head and shutil.which(head):
            return DetectResult(installed=True, command=head)
    return DetectResult(installed=False)


def choose_default_invocation(tool: ToolEntry, detection: DetectResult | None = None) -> Invocation:
    """The dedicated binary when it was detected, else a discovery command.

    Prefers the discovery command whose head was detected on PATH; with no
    detection the first discovery command (or ``bin``) is used.
    """
    if detection is not None and detection.installed:
        if detection.command == tool.bin:
            return Invocation(command=tool.bin)
        for command in tool.discovery_commands:
            parts = split_command(command)
            if parts and parts[0] == detection.command:
                return Invocation(command=parts[0], args=parts[1:])
    source = tool.discovery_commands[0] if tool.discovery_commands else tool.bin
    parts = split_command(source or tool.bin)
    if not parts:
        raise ToolResolutionError(f"Tool '{tool.id}' has no bin or discovery command.")
    return Invocation(command=parts[0], args=parts[1:])


def select_installer(tool: ToolEntry, manager: str = "auto", platform: str = "") -> ToolInstaller:
    """Pick the platform installer, preferring *manager* when it is listed."""
    installers = tool.installers.get(platform or current_platform(), [])
    if not installers:
        raise InstallError(
            f"No installer defined for '{tool.id}' on {platform or current_platform()}."
        )
    manager = (manager or "auto").lower()
    if manager != "auto":
        for installer in installers:
            if installer.type.lower() == manager:
                return installer
    return installers[0]


async def install_tool(tool: ToolEntry, manager: str = "auto") -> ToolInstaller:
    """Run the chosen installer command. Never goes through a shell.

    Raises:
        InstallError: No installer fits, or the install command failed.
    """
    installer = select_installer(tool, manager)
    cmd = split_command(installer.command)
    if not cmd:
        raise InstallError(f"Installer for '{tool.id}' has an empty command.")

    logger.info("Installing %s using: %s", tool.id, installer.command)
    returncode, stdout, stderr = await run_command(cmd, timeout=_INSTALL_TIMEOUT)
    if returncode != 0:
        output = (stderr or stdout).strip()
        raise InstallError(
            f"Installing '{tool.id}' with '{installer.command}' failed "
            f"(exit {returncode}): {output}"
        )
    return installer


async def run_health_check(tool: ToolEntry) -> HealthResult:
    """Run the version and probe commands; both must exit 0 when defined."""
    for command in (tool.health_version_command, tool.health_probe_command):
        if not command:
            continue
        returncode, stdout, stderr = await run_command(
            split_command(command), timeout=_HEALTH_TIMEOUT
        )
        if returncode != 0:
            detail = (stderr or stdout).strip() or f"exit code {returncode}"
            return HealthResult(ok=False, message=f"'{command}' failed: {detail}")
    return HealthResult(ok=True)


def select_fallback(tool: ToolEntry, prefixes: Iterable[str]) -> Invocation | None:
    """First discovery command whose head is one of *prefixes*, or None."""
    allowed = {p.strip() for p in prefixes if p.strip()}
    for command in tool.discovery_commands:
        parts = split_command(command)
        if parts and parts[0] in allowed:
            return Invocation(command=parts[0], args=parts[1:])
    return None


def uses_dedicated_binary(
    tool: ToolEntry, invocation: Invocation, generic_runners: Iterable[str]
) -> bool:
    return invocation.command == tool.bin and tool.bin not in set(generic_runners)


async def resolve_invocation(
    tool: ToolEntry,
    *,
    allow_install: bool = True,
    install_manager: str = "auto",
    accept_fallback: bool = True,
    fallback_prefixes: Iterable[str] = (),
    generic_runners: Iterable[str] = (),
) -> Invocation:
    """Turn a catalog tool into a launchable invocation.

    Raises:
        InstallError: Installation was attempted and failed.
        ToolResolutionError: The tool is missing with installs disabled, is
            still missing after install, or failed its health check with no
            acceptable fallback.
    """
    detection = detect_tool(tool)
    if not detection.installed:
        if not allow_install:
            raise ToolResolutionError(
                f"STDIO tool '{tool.id}' is not installed and installation is disabled "
                "(MCP_WEAVE_NO_INSTALL=1)."
            )
        await install_tool(tool, install_manager)
        detection = detect_tool(tool)
        if not detection.installed:
            raise ToolResolutionError(
                f"Installing '{tool.id}' appears to have failed; command not found after install."
            )

    invocation = choose_default_invocation(tool, detection)
    if not uses_dedicated_binary(tool, invocation, generic_runners):
        return invocation

    health = await run_health_check(tool)
    if health.ok:
        return invocation

    logger.warning("Health check failed for %s: %s", tool.bin, health.message)
    fallback = select_fallback(tool, fallback_prefixes)
    if fallback is not None and accept_fallback:
        logger.info("Using fallback invocation for %s: %s", tool.id, fallback.command)
        return fallback
    raise ToolResolutionError(
        f"STDIO tool health check failed for '{tool.bin}': {health.message or 'unknown error'}"
    )
