# Tool domain models
# Tool surface, call context and the problem payload returned on failure

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping, Protocol

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from ..services.dependencies import ServiceProvider


class ProblemDetails(BaseModel):
    """Machine-readable error payload in the shape of RFC 7807."""

    model_config = ConfigDict(extra="forbid")

    type: str | None = Field(None, description="URI reference identifying the problem type")
    title: str | None = Field(None, description="Short, human-readable summary")
    status: int | None = Field(None, description="HTTP status code")
    detail: str | None = Field(None, description="Explanation specific to this occurrence")
    instance: str | None = Field(None, description="URI reference identifying this occurrence")
    extensions: dict[str, Any] = Field(
        default_factory=dict, description="Additional diagnostic members"
    )


@dataclass(frozen=True)
class ToolCallContext:
    """Per-call context attached by the tool-invocation layer."""

    services: "ServiceProvider | None" = None


class ToolDescriptor(Protocol):
    """Surface accepted by the tool registration layer."""

    name: str
    description: str
    input_schema: dict[str, Any]
    output_schema: dict[str, Any]

    async def invoke(
        self, arguments: Mapping[str, Any], context: ToolCallContext | None = None
    ) -> Any: ...
