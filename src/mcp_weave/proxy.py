"""Bridge remote (http/sse) servers into STDIO-only agents via supergateway.

Agents such as Codex CLI can only launch local processes. For them a
remote server is written as ``npx -y supergateway --streamableHttp URL ...``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import replace

from mcp_weave.errors import ValidationError
from mcp_weave.models import CanonicalServerSpec, Transport
from mcp_weave.redaction import BEARER_FLAG, redact_argv
from mcp_weave.validation import is_valid_url

logger = logging.getLogger(__name__)

SUPERGATEWAY_COMMAND = "npx"
SUPERGATEWAY_PREFIX: tuple[str, ...] = ("-y", "supergateway")

_BEARER_HEADER = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


def build_supergateway_args(
    remote_url: str,
    transport: Transport | str,
    bearer: str = "",
    headers: Iterable[tuple[str, str]] = (),
) -> list[str]:
    """Build the supergateway argv (without the ``npx -y supergateway`` prefix).

    - http => ``--streamableHttp URL``
    - sse  => ``--sse URL``
    - bearer => ``--oauth2Bearer TOKEN``
    - headers => repeated ``--header "K: V"`` (order preserved, empty keys skipped)
    """
    if transport not in (Transport.HTTP, Transport.SSE):
        raise ValidationError(f"Unsupported transport for supergateway: {transport}")
    if not is_valid_url(remote_url):
        raise ValidationError(f"Invalid remote URL: {remote_url}")

    argv: list[str] = []
    if transport == Transport.HTTP:
        argv += ["--streamableHttp", remote_url]
    else:
        argv += ["--sse", remote_url]

    if bearer:
        argv += [BEARER_FLAG, bearer]

    for key, value in headers:
        key = key.strip()
        if not key:
            continue
        argv += ["--header", f"{key}: {value}"]
    return argv


def bridge_to_stdio(spec: CanonicalServerSpec) -> CanonicalServerSpec:
    """Turn a remote spec into the STDIO spec that proxies it.

    A ``Bearer`` Authorization header becomes ``--oauth2Bearer``; all other
    headers are forwarded with ``--header``.
    """
    if spec.transport == Transport.STDIO:
        return spec

    bearer = ""
    forwarded: list[tuple[str, str]] = []
    for key, value in spec.headers.items():
        if key.lower() == "authorization":
            match = _BEARER_HEADER.match(value.strip())
            if match:
                bearer = match.group(1).strip()
                continue
        forwarded.append((key, value))

    argv = build_supergateway_args(spec.url, spec.transport, bearer=bearer, headers=forwarded)
    args = [*SUPERGATEWAY_PREFIX, *argv]
    logger.debug("Bridging %s via supergateway: %s", spec.server_id, redact_argv(args))
    return replace(
        spec,
        transport=Transport.STDIO,
        url="",
        headers={},
        command=SUPERGATEWAY_COMMAND,
        args=args,
    )
