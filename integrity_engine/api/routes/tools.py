"""
Tool endpoints for agent clients.

Arguments are validated against each tool's declarative schema before the
tool runs; malformed arguments answer 400 with the error list.
"""
from fastapi import APIRouter, Depends
import logging

from integrity_engine.core.security import verify_api_key
from integrity_engine.core.error_handling import handle_integrity_errors
from integrity_engine.models.api_models import ToolCallRequest
from integrity_engine.services.tool_dispatcher import get_tool_dispatcher

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/tools", dependencies=[Depends(verify_api_key)])


@router.get("")
async def list_tools():
    """Available tools with their input schemas."""
    return {"tools": get_tool_dispatcher().list_tools()}


@router.post("/{tool_name}")
@handle_integrity_errors("Tool call failed")
async def call_tool(tool_name: str, request: ToolCallRequest):
    """
    Run a tool.

    Args:
        tool_name: Registered tool name
        request: JSON body with the tool's arguments

    Returns:
        Tool name and its result
    """
    result = await get_tool_dispatcher().dispatch(tool_name, request.arguments)
    return {"tool": tool_name, "result": result}
