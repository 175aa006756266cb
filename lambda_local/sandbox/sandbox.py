"""
Execution Sandbox

Runs one handler invocation in a fresh Python subprocess with an explicit
environment. The child writes exactly one terminal frame to a dedicated
control pipe; stdout/stderr are relayed line by line to the `sandbox.output`
logger and never interpreted.
"""

import asyncio
import json
import logging
import os
import signal
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from .bootstrap import FRAME_HEADER
from .models import ExecutionRequest, ExecutionResult

logger = logging.getLogger("sandbox.execution")
output_logger = logging.getLogger("sandbox.output")

BOOTSTRAP_PATH = str(Path(__file__).with_name("bootstrap.py"))
MAX_FRAME_SIZE = 64 * 1024 * 1024
RELAY_CHUNK_SIZE = 64 * 1024
MAX_LINE_LENGTH = 1024 * 1024


class ProtocolError(Exception):
    """Malformed frame on the control pipe."""


async def read_frame(reader: asyncio.StreamReader) -> Optional[Dict[str, Any]]:
    """
    Read one length-prefixed JSON frame.

    Returns None when the pipe closes before a complete frame arrives.
    """
    try:
        header = await reader.readexactly(FRAME_HEADER.size)
        (length,) = FRAME_HEADER.unpack(header)
        if length > MAX_FRAME_SIZE:
            raise ProtocolError(f"Frame of {length} bytes exceeds limit")
        body = await reader.readexactly(length)
    except asyncio.IncompleteReadError:
        return None

    try:
        message = json.loads(body.decode("utf-8"))
    except ValueError as e:
        raise ProtocolError(f"Invalid frame: {e}") from e
    if not isinstance(message, dict):
        raise ProtocolError("Frame is not an object")
    return message


def frame_to_result(message: Dict[str, Any]) -> ExecutionResult:
    kind = message.get("type")
    if kind == "result":
        return ExecutionResult.succeeded(message.get("payload"))
    if kind == "error":
        return ExecutionResult.handler_failure(
            str(message.get("errorMessage", "")),
            error_type=message.get("errorType"),
            stack_trace=list(message.get("stackTrace") or []),
        )
    if kind == "module_error":
        return ExecutionResult.module_load_error(
            str(message.get("errorMessage", "")),
            error_type=message.get("errorType"),
        )
    return ExecutionResult.process_crashed(f"Unexpected message type: {kind!r}")


class ExecutionSandbox:
    def __init__(self, python: Optional[str] = None, exit_grace: float = 1.0):
        """
        Args:
            python: interpreter used for the child (defaults to the running one)
            exit_grace: seconds to wait for the child to exit after its terminal frame
        """
        self.python = python or sys.executable
        self.exit_grace = exit_grace

    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        """
        Run the handler and return exactly one ExecutionResult.

        Cancelling the awaiting task kills the child.
        """
        started = time.monotonic()
        result = await self._run(request)
        duration_ms = (time.monotonic() - started) * 1000
        logger.info(
            f"Execution of {request.function_name} finished: {result.kind.value}",
            extra={
                "function_name": request.function_name,
                "handler_path": request.handler_path,
                "result_kind": result.kind.value,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return result.model_copy(update={"duration_ms": duration_ms})

    async def _run(self, request: ExecutionRequest) -> ExecutionResult:
        timeout_ms = request.timeout_ms
        control_read, control_write = os.pipe()
        stdout_read, stdout_write = os.pipe()
        stderr_read, stderr_write = os.pipe()
        cwd = os.path.dirname(os.path.abspath(request.handler_path))

        try:
            # A new session makes the child a process group leader, so anything
            # the handler spawns can be killed with it.
            process = await asyncio.create_subprocess_exec(
                self.python,
                BOOTSTRAP_PATH,
                str(control_write),
                request.handler_path,
                request.function_name,
                str(timeout_ms if timeout_ms is not None else -1),
                stdin=asyncio.subprocess.PIPE,
                stdout=stdout_write,
                stderr=stderr_write,
                env=dict(request.env),
                cwd=cwd if os.path.isdir(cwd) else None,
                pass_fds=(control_write,),
                start_new_session=True,
            )
        except OSError as e:
            for fd in (control_read, stdout_read, stderr_read):
                os.close(fd)
            logger.error(
                f"Failed to start sandbox for {request.function_name}",
                extra={"function_name": request.function_name, "error_detail": str(e)},
            )
            return ExecutionResult.process_crashed(f"Failed to start process: {e}")
        finally:
            for fd in (control_write, stdout_write, stderr_write):
                os.close(fd)

        transports: List[asyncio.BaseTransport] = []
        relays: List[asyncio.Task] = []
        try:
            control = await self._open_reader(control_read, transports)
            for fd, stream_name in ((stdout_read, "stdout"), (stderr_read, "stderr")):
                reader = await self._open_reader(fd, transports)
                relays.append(asyncio.create_task(self._relay(reader, stream_name, request)))

            timeout = timeout_ms / 1000 if timeout_ms is not None else None
            try:
                message = await asyncio.wait_for(
                    self._exchange(process, request, control), timeout
                )
            except asyncio.TimeoutError:
                return ExecutionResult.timed_out(timeout_ms)
            except ProtocolError as e:
                return ExecutionResult.process_crashed(str(e))

            if message is None:
                returncode = await process.wait()
                return ExecutionResult.process_crashed(
                    f"Process exited before completing request (exit code {returncode})"
                )
            await self._wait_exit(process)
            return frame_to_result(message)
        finally:
            self._kill_group(process)
            await self._reap(process)
            await self._stop_relays(relays)
            for transport in transports:
                transport.close()

    async def _open_reader(self, fd: int, transports: List[asyncio.BaseTransport]):
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader(loop=loop)
        transport, _ = await loop.connect_read_pipe(
            lambda: asyncio.StreamReaderProtocol(reader, loop=loop),
            os.fdopen(fd, "rb", 0),
        )
        transports.append(transport)
        return reader

    async def _exchange(
        self, process, request: ExecutionRequest, control: asyncio.StreamReader
    ) -> Optional[Dict[str, Any]]:
        await self._send_request(process, request)
        return await read_frame(control)

    async def _send_request(self, process, request: ExecutionRequest) -> None:
        payload = json.dumps({"event": request.event, "context": request.context}, default=str)
        try:
            process.stdin.write(payload.encode("utf-8"))
            await process.stdin.drain()
            process.stdin.close()
        except (BrokenPipeError, ConnectionResetError):
            # Child exited early; the control pipe decides the outcome.
            logger.debug(f"Sandbox for {request.function_name} closed stdin early")

    async def _wait_exit(self, process) -> None:
        try:
            await asyncio.wait_for(process.wait(), self.exit_grace)
        except asyncio.TimeoutError:
            logger.warning(f"Sandbox process {process.pid} did not exit after its result")

    def _kill_group(self, process) -> None:
        """Kill the child and everything it spawned."""
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass

    async def _reap(self, process) -> None:
        if process.stdin is not None and not process.stdin.is_closing():
            process.stdin.close()
        try:
            await asyncio.wait_for(process.wait(), self.exit_grace)
        except asyncio.TimeoutError:
            logger.warning(f"Sandbox process {process.pid} could not be reaped")

    async def _stop_relays(self, relays: List[asyncio.Task]) -> None:
        if not relays:
            return
        # Output held open by processes outside the group is abandoned after the grace period.
        _, pending = await asyncio.wait(relays, timeout=self.exit_grace)
        for task in pending:
            task.cancel()
        await asyncio.gather(*relays, return_exceptions=True)

    async def _relay(self, stream, stream_name: str, request: ExecutionRequest) -> None:
        extra = {
            "function_name": request.function_name,
            "stream": stream_name,
            "aws_request_id": request.request_id,
        }
        pending = b""
        while True:
            chunk = await stream.read(RELAY_CHUNK_SIZE)
            if not chunk:
                break
            pending += chunk
            *lines, pending = pending.split(b"\n")
            for line in lines:
                self._emit(line, extra)
            # Overlong lines are relayed in pieces.
            while len(pending) >= MAX_LINE_LENGTH:
                self._emit(pending[:MAX_LINE_LENGTH], extra)
                pending = pending[MAX_LINE_LENGTH:]
        if pending:
            self._emit(pending, extra)

    def _emit(self, line: bytes, extra: Dict[str, Any]) -> None:
        output_logger.info(line.decode("utf-8", "replace").rstrip("\r"), extra=extra)
