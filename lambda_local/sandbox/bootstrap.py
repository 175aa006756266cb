"""
Sandbox bootstrap.

Runs inside the handler subprocess. It is started as a plain script with an
explicit environment, so it only depends on the standard library.

    python bootstrap.py <control_fd> <handler_path> <function_name> <timeout_ms>

stdin carries one JSON document `{"event": ..., "context": {...}}`. Exactly one
terminal frame is written to `control_fd` (4-byte big-endian length + JSON),
then the process exits 0 on success and 1 on error.
"""

import asyncio
import importlib.util
import inspect
import json
import os
import struct
import sys
import threading
import time
import traceback

FRAME_HEADER = struct.Struct(">I")
NO_DEADLINE_MS = 2**31 - 1


def encode_frame(message):
    body = json.dumps(message, default=str).encode("utf-8")
    return FRAME_HEADER.pack(len(body)) + body


class TerminalChannel:
    """Write side of the control pipe. Only the first completion is sent."""

    def __init__(self, fd):
        self.fd = fd
        self.sent = False
        self._lock = threading.Lock()

    def complete(self, error, value):
        if error is not None:
            self._finish(_error_message(error), 1)
        else:
            self._finish({"type": "result", "payload": _jsonable(value)}, 0)

    def module_error(self, error_type, message):
        self._finish({"type": "module_error", "errorType": error_type, "errorMessage": message}, 1)

    def _finish(self, message, code):
        with self._lock:
            if self.sent:
                return
            self.sent = True
            data = encode_frame(message)
            while data:
                written = os.write(self.fd, data)
                data = data[written:]
            os.close(self.fd)
        sys.stdout.flush()
        sys.stderr.flush()
        os._exit(code)


def _jsonable(value):
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return json.loads(json.dumps(value, default=str))


def _error_message(error):
    if isinstance(error, BaseException):
        message = str(error) or type(error).__name__
        trace = traceback.format_exception(type(error), error, error.__traceback__)
        sys.stderr.write("".join(trace))
        return {
            "type": "error",
            "errorMessage": message,
            "errorType": type(error).__name__,
            "stackTrace": [line.rstrip("\n") for line in trace],
        }
    sys.stderr.write(f"{error}\n")
    return {"type": "error", "errorMessage": str(error), "errorType": "Error", "stackTrace": []}


class LambdaContext:
    """Context object handed to the handler, with the completion surface."""

    def __init__(self, values, deadline, channel):
        self._deadline = deadline
        self._channel = channel
        self.request_context = values
        self.function_name = values.get("functionName", "")
        self.function_version = "$LATEST"
        self.invoked_function_arn = values.get("invokedFunctionArn", "$LATEST")
        self.memory_limit_in_mb = str(values.get("memoryLimitInMB", "1024"))
        self.aws_request_id = values.get("awsRequestId") or values.get("requestId", "")
        self.log_group_name = f"/aws/lambda/{self.function_name}"
        self.log_stream_name = f"local/{self.aws_request_id}"
        self.identity = values.get("identity")
        self.client_context = None

    def get_remaining_time_in_millis(self):
        if self._deadline is None:
            return NO_DEADLINE_MS
        return max(0, int((self._deadline - time.monotonic()) * 1000))

    def succeed(self, value=None):
        self._channel.complete(None, value)

    def fail(self, error):
        self._channel.complete(error if error is not None else "Unknown error", None)

    def done(self, error=None, value=None):
        self._channel.complete(error, value)


def load_handler(handler_path, function_name):
    """Import the handler module from its file and return the entry point."""
    directory = os.path.dirname(os.path.abspath(handler_path))
    if directory not in sys.path:
        sys.path.insert(0, directory)

    module_name = os.path.splitext(os.path.basename(handler_path))[0]
    spec = importlib.util.spec_from_file_location(module_name, handler_path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load handler module from {handler_path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)

    handler = getattr(module, function_name, None)
    if not callable(handler):
        raise AttributeError(f"Handler '{function_name}' missing on module '{module_name}'")
    return handler


def _wait_for_threads():
    main = threading.main_thread()
    for thread in threading.enumerate():
        if thread is not main and not thread.daemon:
            thread.join()


def invoke(handler, event, context, channel):
    try:
        if len(inspect.signature(handler).parameters) >= 3:
            handler(event, context, channel.complete)
            _wait_for_threads()
            # Returning without calling back ends the process without a terminal frame.
            return
        if inspect.iscoroutinefunction(handler):
            result = asyncio.run(handler(event, context))
        else:
            result = handler(event, context)
    except Exception as e:
        channel.complete(e, None)
        return
    channel.complete(None, result)


def main(argv):
    control_fd, handler_path, function_name, timeout_ms = argv[1:5]
    channel = TerminalChannel(int(control_fd))

    try:
        request = json.loads(sys.stdin.read() or "{}")
    except ValueError as e:
        channel.complete(ValueError(f"Invalid invocation payload: {e}"), None)
        return

    timeout_ms = int(timeout_ms)
    deadline = time.monotonic() + timeout_ms / 1000 if timeout_ms >= 0 else None

    try:
        handler = load_handler(handler_path, function_name)
    except (ImportError, OSError, SyntaxError) as e:
        channel.module_error("Runtime.ImportModuleError", f"Unable to import module: {e}")
        return
    except AttributeError as e:
        channel.module_error("Runtime.HandlerNotFound", str(e))
        return
    except Exception as e:
        channel.module_error("Runtime.ImportModuleError", f"{type(e).__name__}: {e}")
        return

    context = LambdaContext(request.get("context") or {}, deadline, channel)
    invoke(handler, request.get("event"), context, channel)
    sys.exit(1)


if __name__ == "__main__":
    main(sys.argv)
