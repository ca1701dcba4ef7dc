# Tool discovery service
# Turns the operations of one API group into registered tools

import logging

from ..errors import ToolNameCollisionError
from ..serialization.options import SerializerOptions
from .operation_provider import ApiDescriptionProvider, OperationGroup
from .operation_tool import OperationTool

logger = logging.getLogger(__name__)


def select_group(groups: list[OperationGroup], group_name: str | None = None) -> OperationGroup | None:
    """Pick the group to expose: the named one, or the last registered."""
    if group_name is not None:
        return next((group for group in groups if group.name == group_name), None)
    return groups[-1] if groups else None


def discover_tools(
    provider: ApiDescriptionProvider,
    serializer_options: SerializerOptions,
    group_name: str | None = None,
) -> list[OperationTool]:
    """Build one tool per operation in the selected API group.

    Operations that fail to convert are logged and skipped, and so is any
    operation whose tool name was already taken; the first one wins.

    Args:
        provider: Source of grouped API descriptions
        serializer_options: Serialization configuration for every tool
        group_name: Pin discovery to this group instead of the last one

    Returns:
        The tools, in route order
    """
    group = select_group(provider.groups, group_name)
    if group is None:
        logger.warning(f"No API group found to expose as tools (requested: {group_name!r})")
        return []

    tools: dict[str, OperationTool] = {}
    for description in group.items:
        operation = description.operation
        if operation is None:
            logger.debug(f"Skipping {description.relative_path}: no operation metadata")
            continue

        try:
            if operation.tool_name in tools:
                raise ToolNameCollisionError(
                    f"Tool name '{operation.tool_name}' is already registered",
                    {"path": description.relative_path},
                )
            tool = OperationTool(operation, serializer_options)
        except Exception as e:
            logger.error(f"Failed to create tool for {operation.display_name}: {e}", exc_info=True)
            continue

        tools[tool.name] = tool
        logger.debug(f"Created tool {tool.name} for {', '.join(description.http_methods)} {description.relative_path}")

    logger.info(f"Discovered {len(tools)} tools in API group {group.name!r}")
    return list(tools.values())
