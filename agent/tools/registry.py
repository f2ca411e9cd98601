"""
Tool registry: named booking operations with pydantic-validated arguments.

A Tool pairs a name and description with an argument schema (a pydantic
model using the camelCase wire names) and an async handler receiving the
validated model. ToolRegistry.execute() takes the raw JSON text found in the
assistant reply, so every tool gets the same parse/validate treatment.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ValidationError

from agent.errors import InvalidToolArgumentsError, UnknownToolError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolOutput:
    """Formatted text for the assistant plus structured data for the orchestrator."""

    text: str
    data: dict[str, Any] = field(default_factory=dict)


ToolHandler = Callable[[BaseModel], Awaitable[ToolOutput]]


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    args_schema: type[BaseModel]
    handler: ToolHandler
    example: dict[str, Any] | None = None


class EmptyArgs(BaseModel):
    """Schema for tools without arguments."""


def _describe_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "argumentos"
        problems.append(f"{location}: {item['msg']}")
    return "; ".join(problems)


class ToolRegistry:
    """Name → Tool mapping used by the tool-call protocol handler."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool:
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownToolError(name)
        return tool

    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    async def execute(self, name: str, raw_args: str | dict[str, Any]) -> ToolOutput:
        """
        Validate raw_args against the tool schema and run its handler.

        Raises:
            UnknownToolError: If no tool is registered under name
            InvalidToolArgumentsError: If the arguments are not a JSON object
                or do not satisfy the schema
            ToolError: Any domain error raised by the handler
        """
        tool = self.get(name)

        if isinstance(raw_args, str):
            text = raw_args.strip()
            if not text:
                payload: Any = {}
            else:
                try:
                    payload = json.loads(text)
                except json.JSONDecodeError as e:
                    raise InvalidToolArgumentsError(
                        f"argumentos JSON inválidos para {name}: {e.msg}"
                    ) from e
        else:
            payload = raw_args

        if not isinstance(payload, dict):
            raise InvalidToolArgumentsError(
                f"los argumentos de {name} deben ser un objeto JSON"
            )

        try:
            args = tool.args_schema.model_validate(payload)
        except ValidationError as e:
            raise InvalidToolArgumentsError(
                f"argumentos inválidos para {name}: {_describe_validation_error(e)}"
            ) from e

        logger.info(f"Executing tool | tool={name}", extra={"tool_name": name})
        return await tool.handler(args)

    def render_catalog(self) -> str:
        """
        Describe every tool for the system prompt: invocation format, argument
        JSON schema and an example call.
        """
        lines = [
            "=== HERRAMIENTAS DISPONIBLES ===",
            "Para usar una herramienta escribe EXACTAMENTE este formato y nada más en ese bloque:",
            "[USE_TOOL: nombre_herramienta]",
            '{"argumento": "valor"}',
            "[END_TOOL]",
            "Usa una sola herramienta por respuesta. Las fechas van en formato YYYY-MM-DD.",
            "",
        ]

        for index, tool in enumerate(self._tools.values(), start=1):
            schema = tool.args_schema.model_json_schema(by_alias=True)
            properties = schema.get("properties", {})
            required = set(schema.get("required", []))

            lines.append(f"{index}. {tool.name}: {tool.description}")
            if properties:
                lines.append("   Argumentos:")
                for prop_name, prop in properties.items():
                    marker = "obligatorio" if prop_name in required else "opcional"
                    kind = prop.get("type") or ("objeto" if "$ref" in prop or "anyOf" in prop else "valor")
                    description = prop.get("description", "")
                    lines.append(f"   - {prop_name} ({kind}, {marker}): {description}".rstrip(": "))
            else:
                lines.append("   Argumentos: ninguno ({})")

            example = json.dumps(tool.example or {}, ensure_ascii=False)
            lines.append(f"   Ejemplo: [USE_TOOL: {tool.name}] {example} [END_TOOL]")
            lines.append("")

        lines.append("=== FIN HERRAMIENTAS ===")
        return "\n".join(lines)
