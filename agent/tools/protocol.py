"""
Tool-call protocol embedded in assistant text.

The assistant requests a tool by writing, anywhere in its reply:

    [USE_TOOL: check_availability]
    {"fechaEntrada": "2025-12-10", "fechaSalida": "2025-12-15"}
    [END_TOOL]

resolve() executes the first such invocation, removes it from the text and
appends a result block:

    [RESULTADO DE CHECK_AVAILABILITY]:
    <tool output>
    [FIN RESULTADO]

On failure the text is kept and an "[ERROR]: <message>" annotation is
appended instead. Markers are stripped before text reaches the user
(see agent.nodes.response_shaping).
"""

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass

from agent.errors import MalformedToolCallError, ToolError
from agent.tools.registry import ToolOutput, ToolRegistry

logger = logging.getLogger(__name__)

TOOL_START_MARKER = "[USE_TOOL:"
TOOL_END_MARKER = "[END_TOOL]"
RESULT_BLOCK_TEMPLATE = "\n\n[RESULTADO DE {name}]:\n{result}\n[FIN RESULTADO]\n"
ERROR_ANNOTATION_TEMPLATE = "{text}\n\n[ERROR]: {error}"

_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


@dataclass(frozen=True)
class ToolInvocation:
    name: str
    arguments: str
    start: int
    end: int


@dataclass
class ToolResolution:
    """Outcome of resolving one assistant reply."""

    text: str
    tool_executed: bool = False
    tool_name: str | None = None
    output: ToolOutput | None = None
    error: ToolError | None = None


def annotate_error(text: str, error: Exception) -> str:
    return ERROR_ANNOTATION_TEMPLATE.format(text=text, error=error)


def locate_invocation(text: str) -> ToolInvocation | None:
    """
    Find the first tool invocation in text.

    Raises:
        MalformedToolCallError: If a start marker has no tool name or no end marker
    """
    start = text.find(TOOL_START_MARKER)
    if start == -1:
        return None

    name_end = text.find("]", start + len(TOOL_START_MARKER))
    if name_end == -1:
        raise MalformedToolCallError("tool call mal formateada: falta ']' tras el nombre")

    name = text[start + len(TOOL_START_MARKER):name_end].strip()
    if not name:
        raise MalformedToolCallError("tool call mal formateada: falta el nombre de la herramienta")

    end = text.find(TOOL_END_MARKER, name_end)
    if end == -1:
        raise MalformedToolCallError("tool call mal formateada: falta [END_TOOL]")

    arguments = _CODE_FENCE_RE.sub("", text[name_end + 1:end].strip())
    return ToolInvocation(
        name=name,
        arguments=arguments.strip(),
        start=start,
        end=end + len(TOOL_END_MARKER),
    )


class ToolCallProtocol:
    """Detects, executes and resolves tool invocations against a registry."""

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

    @staticmethod
    def detect(text: str) -> tuple[str | None, str | None, bool]:
        """
        Returns:
            (tool_name, arguments_json, True) for the first invocation,
            (None, None, False) when text has no start marker

        Raises:
            MalformedToolCallError: If the invocation is not closed
        """
        invocation = locate_invocation(text)
        if invocation is None:
            return None, None, False
        return invocation.name, invocation.arguments, True

    async def execute(self, tool_name: str, arguments_json: str) -> ToolOutput:
        return await self.registry.execute(tool_name, arguments_json)

    async def resolve(
        self, text: str, blocked: Mapping[str, ToolError] | None = None
    ) -> ToolResolution:
        """
        Execute the first invocation in text and splice its result in.

        Tools named in blocked are not executed; their mapped error is
        annotated instead.
        """
        try:
            invocation = locate_invocation(text)
        except MalformedToolCallError as e:
            logger.warning(f"Malformed tool call in assistant reply: {e}")
            return ToolResolution(text=annotate_error(text, e), error=e)

        if invocation is None:
            return ToolResolution(text=text)

        name = invocation.name
        if blocked and name in blocked:
            error = blocked[name]
            logger.warning(f"Blocked tool call | tool={name} | error={error}", extra={"tool_name": name})
            return ToolResolution(text=annotate_error(text, error), tool_name=name, error=error)

        try:
            output = await self.execute(name, invocation.arguments)
        except ToolError as e:
            logger.warning(f"Tool failed | tool={name} | error={e}", extra={"tool_name": name})
            return ToolResolution(text=annotate_error(text, e), tool_name=name, error=e)
        except Exception as e:
            logger.error(
                f"Unexpected error executing tool | tool={name} | error={e}",
                extra={"tool_name": name},
                exc_info=True,
            )
            error = ToolError(f"error al ejecutar {name}: {e}")
            return ToolResolution(text=annotate_error(text, error), tool_name=name, error=error)

        before = text[:invocation.start].rstrip()
        after = text[invocation.end:].strip()
        remaining = "\n\n".join(part for part in (before, after) if part)

        result_block = RESULT_BLOCK_TEMPLATE.format(name=name.upper(), result=output.text)
        return ToolResolution(
            text=(remaining + result_block).strip(),
            tool_executed=True,
            tool_name=name,
            output=output,
        )
