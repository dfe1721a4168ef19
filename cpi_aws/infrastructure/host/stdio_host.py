"""
Stdio Host

Architectural Intent:
- Line-delimited JSON transport for hosts that drive the adapter as a
  subprocess
- Reads one request per line: {"id": ..., "action": ..., "params": {...}}
- Writes one response per line: {"id": ..., "success": ..., "status": ...,
  "result": ..., "warning"?: ..., "error"?: ...}

Design Decisions:
- Requests are handled strictly one at a time, in arrival order
- Malformed lines still get a response line (id null when unknown) so the
  host never waits on a request that was dropped
- stdout carries protocol output only; logs go to stderr
"""

import asyncio
import json
import logging
import sys
from typing import Any, Optional

from cpi_aws.application.dtos.action_dtos import ActionRequest
from cpi_aws.domain.value_objects.action_result import ActionError, ActionResult
from cpi_aws.domain.value_objects.error_kind import ErrorKind
from cpi_aws.infrastructure.host.extension import Ec2Extension

logger = logging.getLogger(__name__)


def _rejected(message: str, code: str = "MalformedRequest") -> ActionResult:
    return ActionResult.failure(
        ActionError(kind=ErrorKind.INVALID_PARAMETERS, message=message, code=code)
    )


def _encode_line(obj: dict[str, Any]) -> bytes:
    return (json.dumps(obj) + "\n").encode("utf-8")


async def handle_line(extension: Ec2Extension, line: str) -> Optional[dict[str, Any]]:
    """Turn one request line into one response dict. Blank lines yield None."""
    line = line.strip()
    if not line:
        return None

    try:
        message = json.loads(line)
    except json.JSONDecodeError as e:
        logger.warning("Unparseable request line: %s", e)
        return {"id": None, **_rejected(f"Invalid JSON: {e}", "ParseError").to_dict()}

    if not isinstance(message, dict):
        return {"id": None, **_rejected("Request must be a JSON object").to_dict()}

    msg_id = message.get("id")
    try:
        request = ActionRequest.from_dict(message)
    except ValueError as e:
        return {"id": msg_id, **_rejected(str(e)).to_dict()}

    result = await extension.dispatch(request.action_name, request.parameters)
    return {"id": msg_id, **result.to_dict()}


async def run_stdio(
    extension: Ec2Extension,
    reader: Optional[asyncio.StreamReader] = None,
    writer: Optional[asyncio.StreamWriter] = None,
) -> int:
    """Serve requests until EOF. Returns the number of requests answered.

    Args:
        extension: The extension to dispatch to.
        reader: Optional StreamReader (defaults to stdin).
        writer: Optional StreamWriter (defaults to stdout).
    """
    if reader is None:
        loop = asyncio.get_running_loop()
        _reader = asyncio.StreamReader()
        await loop.connect_read_pipe(
            lambda: asyncio.StreamReaderProtocol(_reader), sys.stdin.buffer
        )
        reader = _reader

    answered = 0
    while True:
        raw = await reader.readline()
        if not raw:
            break  # EOF

        response = await handle_line(extension, raw.decode("utf-8", errors="replace"))
        if response is None:
            continue

        data = _encode_line(response)
        if writer is not None:
            writer.write(data)
            await writer.drain()
        else:
            sys.stdout.buffer.write(data)
            sys.stdout.buffer.flush()
        answered += 1

    logger.info("Stdio host finished after %d request(s)", answered)
    return answered
