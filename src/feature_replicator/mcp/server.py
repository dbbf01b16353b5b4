"""MCP stdio server with JSON-RPC framing.

Implements Model Context Protocol (MCP) for legacy feature extraction.
Supports tool listing, schemas, and robust error handling.
"""
import asyncio
import logging
import sys
import json
import traceback
from typing import Any

from feature_replicator import __version__
from feature_replicator.config import Settings
from feature_replicator.mcp.tools import TOOL_REGISTRY
from feature_replicator.mcp.schemas import TOOL_SCHEMAS

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: Settings) -> None:
    """Log to stderr, and to LOG_FILE when set; stdout carries JSON-RPC only."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


# MCP Protocol Implementation


async def handle_initialize(params: dict[str, Any]) -> dict[str, Any]:
    """Handle MCP initialize request."""
    return {
        "protocolVersion": "2024-11-05",
        "capabilities": {
            "tools": {}
        },
        "serverInfo": {
            "name": "feature-replicator",
            "version": __version__
        }
    }


async def handle_tools_list(params: dict[str, Any]) -> dict[str, Any]:
    """List all available tools with their schemas."""
    tools = []

    for tool_name in TOOL_REGISTRY.keys():
        schema = TOOL_SCHEMAS.get(tool_name, {})
        tools.append({
            "name": tool_name,
            "description": schema.get("description", ""),
            "inputSchema": schema.get("inputSchema", {
                "type": "object",
                "properties": {},
                "required": []
            })
        })

    return {"tools": tools}


async def handle_tools_call(params: dict[str, Any]) -> dict[str, Any]:
    """Call a tool with given parameters."""
    tool_name = params.get("name")
    tool_params = params.get("arguments") or {}

    if tool_name not in TOOL_REGISTRY:
        raise ValueError(f"Unknown tool: {tool_name}")

    handler = TOOL_REGISTRY[tool_name]
    result = await handler(**tool_params)

    return {
        "content": [
            {
                "type": "text",
                "text": json.dumps(result, indent=2)
            }
        ]
    }


# JSON-RPC Handler


MCP_METHODS = {
    "initialize": handle_initialize,
    "tools/list": handle_tools_list,
    "tools/call": handle_tools_call,
}


def _error(req_id: Any, code: int, message: str, data: dict[str, Any]) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": req_id,
        "error": {
            "code": code,
            "message": message,
            "data": data
        }
    }


async def handle_request(request: dict[str, Any]) -> dict[str, Any]:
    """Handle a single JSON-RPC request.

    Returns:
        JSON-RPC response dictionary
    """
    req_id = request.get("id")
    method = request.get("method")
    params = request.get("params") or {}

    try:
        # Handle MCP methods
        if method in MCP_METHODS:
            handler = MCP_METHODS[method]
            result = await handler(params)
            return {
                "jsonrpc": "2.0",
                "id": req_id,
                "result": result
            }

        # Handle direct tool calls (backwards compatibility)
        if method in TOOL_REGISTRY:
            handler = TOOL_REGISTRY[method]
            result = await handler(**params)
            return {
                "jsonrpc": "2.0",
                "id": req_id,
                "result": result
            }

        # Unknown method
        return _error(req_id, -32601, f"Method not found: {method}", {
            "available_methods": list(MCP_METHODS.keys()) + list(TOOL_REGISTRY.keys())
        })

    except TypeError as e:
        # Parameter validation errors
        logger.warning(f"Invalid params for {method}: {e}")
        return _error(req_id, -32602, "Invalid params", {
            "error": str(e),
            "traceback": traceback.format_exc()
        })

    except ValueError as e:
        # Tool-specific errors, including input validation
        logger.warning(f"{method} failed: {e}")
        return _error(req_id, -32000, str(e), {
            "error_type": type(e).__name__
        })

    except Exception as e:
        # Unexpected errors
        logger.error(f"Unexpected error in {method}: {e}", exc_info=True)
        return _error(req_id, -32603, "Internal error", {
            "error": str(e),
            "error_type": type(e).__name__,
            "traceback": traceback.format_exc()
        })


def _write_response(response: dict[str, Any]) -> None:
    sys.stdout.write(json.dumps(response) + "\n")
    sys.stdout.flush()


async def run_stdio_server() -> None:
    """Run MCP server over stdio with robust JSON-RPC framing.

    Reads JSON-RPC requests from stdin (one per line).
    Writes JSON-RPC responses to stdout (one per line).
    Logs to stderr.
    """
    logger.info("feature-replicator MCP server starting on stdio...")
    logger.info(f"Available tools: {', '.join(TOOL_REGISTRY.keys())}")

    try:
        while True:
            # Read request from stdin
            line = sys.stdin.readline()
            if not line:
                # EOF - client disconnected
                break

            line = line.strip()
            if not line:
                continue

            try:
                request = json.loads(line)
            except json.JSONDecodeError as e:
                _write_response(_error(None, -32700, "Parse error", {"error": str(e)}))
                continue

            if not isinstance(request, dict):
                _write_response(_error(None, -32600, "Invalid Request", {"error": "Expected a JSON object"}))
                continue

            # Notifications carry no id and get no response
            if "id" not in request:
                logger.debug(f"Notification received: {request.get('method')}")
                continue

            _write_response(await handle_request(request))

    except KeyboardInterrupt:
        logger.info("Server shutting down...")

    except Exception as e:
        logger.error(f"Fatal server error: {e}", exc_info=True)
        raise


def main() -> None:
    """Entry point for MCP server."""
    configure_logging(Settings())
    asyncio.run(run_stdio_server())


if __name__ == "__main__":
    main()
