"""Render a canonical server spec into each agent's native server entry.

Every (agent variant, transport) pair maps to its own small function in
``_RENDERERS``. The shapes are the compatibility surface with each agent's
parser -- they are not projections of one schema. Absent values are
omitted entirely so a merge never clobbers agent defaults with nulls.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum

from mcp_weave.errors import RenderError
from mcp_weave.models import CanonicalServerSpec, RenderedEntry, Transport


class AgentVariant(StrEnum):
    CURSOR = "cursor"
    GEMINI = "gemini"
    CLAUDE = "claude"
    GENERIC = "generic"


_VARIANT_ALIASES: dict[str, AgentVariant] = {
    "cursor": AgentVariant.CURSOR,
    "gemini": AgentVariant.GEMINI,
    "gemini cli": AgentVariant.GEMINI,
    "claude": AgentVariant.CLAUDE,
    "claude code": AgentVariant.CLAUDE,
}


def agent_variant(agent_name: str) -> AgentVariant:
    """Map an agent name to its rendering variant; unknown names are generic."""
    return _VARIANT_ALIASES.get(agent_name.strip().lower(), AgentVariant.GENERIC)


def _present(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) > 0
    return True


def _copy(value: object) -> object:
    if isinstance(value, dict):
        return dict(value)
    if isinstance(value, (list, tuple)):
        return list(value)
    return value


def _build(*fields: tuple[str, object]) -> RenderedEntry:
    """Insert (name, value) pairs in order, skipping absent values."""
    entry: RenderedEntry = {}
    for name, value in fields:
        if _present(value):
            entry[name] = _copy(value)
    return entry


# ─── Cell renderers ─────────────────────────────────────────────


def _plain_stdio(spec: CanonicalServerSpec) -> RenderedEntry:
    return _build(("command", spec.command), ("args", spec.args), ("env", spec.env))


def _typed_remote(type_tag: str) -> Callable[[CanonicalServerSpec], RenderedEntry]:
    def render(spec: CanonicalServerSpec) -> RenderedEntry:
        return _build(("type", type_tag), ("url", spec.url), ("headers", spec.headers))

    return render


def _gemini_stdio(spec: CanonicalServerSpec) -> RenderedEntry:
    return _build(
        ("transport", "stdio"),
        ("command", spec.command),
        ("args", spec.args),
        ("cwd", spec.cwd),
        ("env", spec.env),
        ("timeout", spec.timeout_ms),
    )


def _gemini_sse(spec: CanonicalServerSpec) -> RenderedEntry:
    return _build(
        ("transport", "sse"),
        ("url", spec.url),
        ("headers", spec.headers),
        ("env", spec.env),
        ("timeout", spec.timeout_ms),
    )


def _gemini_http(spec: CanonicalServerSpec) -> RenderedEntry:
    return _build(
        ("httpUrl", spec.url),
        ("headers", spec.headers),
        ("env", spec.env),
        ("timeout", spec.timeout_ms),
    )


def _generic_remote(spec: CanonicalServerSpec) -> RenderedEntry:
    return _build(("url", spec.url), ("headers", spec.headers))


_RENDERERS: dict[tuple[AgentVariant, Transport], Callable[[CanonicalServerSpec], RenderedEntry]] = {
    (AgentVariant.CURSOR, Transport.STDIO): _plain_stdio,
    (AgentVariant.CURSOR, Transport.SSE): _typed_remote("sse"),
    (AgentVariant.CURSOR, Transport.HTTP): _typed_remote("http"),
    (AgentVariant.GEMINI, Transport.STDIO): _gemini_stdio,
    (AgentVariant.GEMINI, Transport.SSE): _gemini_sse,
    (AgentVariant.GEMINI, Transport.HTTP): _gemini_http,
    (AgentVariant.CLAUDE, Transport.STDIO): _plain_stdio,
    (AgentVariant.CLAUDE, Transport.SSE): _typed_remote("sse"),
    (AgentVariant.CLAUDE, Transport.HTTP): _typed_remote("http"),
    (AgentVariant.GENERIC, Transport.STDIO): _plain_stdio,
    (AgentVariant.GENERIC, Transport.SSE): _generic_remote,
    (AgentVariant.GENERIC, Transport.HTTP): _generic_remote,
}


# ─── Public API ─────────────────────────────────────────────────


def render(
    spec: CanonicalServerSpec,
    agent_name: str,
    transport: Transport | str | None = None,
) -> RenderedEntry:
    """Render *spec* for *agent_name* using *transport* (default: the spec's own).

    Never validates required fields -- missing inputs just yield a smaller
    entry. Raises RenderError only for a transport outside the matrix.
    """
    try:
        resolved = Transport(transport or spec.transport)
    except ValueError:
        raise RenderError(
            f"Cannot render transport '{transport or spec.transport}' for {agent_name}."
        ) from None

    renderer = _RENDERERS.get((agent_variant(agent_name), resolved))
    if renderer is None:
        raise RenderError(f"No renderer for {agent_name} over {resolved.value}.")
    return renderer(spec)


def supported_matrix() -> list[tuple[AgentVariant, Transport]]:
    """All (variant, transport) cells the renderer knows."""
    return list(_RENDERERS)
