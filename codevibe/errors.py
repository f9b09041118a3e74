"""Structured error hierarchy with stable error codes."""

from __future__ import annotations


class CodevibeError(Exception):
    def __init__(self, code: str, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.cause = cause

    @classmethod
    def wrap(cls, err: Exception) -> CodevibeError:
        if isinstance(err, CodevibeError):
            return err
        return CodevibeError("UNKNOWN", str(err), err)


class InvocationError(CodevibeError):
    def __init__(self, message: str) -> None:
        super().__init__("INVALID_INVOCATION", message)


class LLMError(CodevibeError):
    def __init__(
        self,
        code: str,
        provider: str,
        message: str,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(code, message, cause)
        self.provider = provider
        self.status_code = status_code


class LLMCircuitOpenError(LLMError):
    def __init__(self, provider: str) -> None:
        super().__init__("LLM_CIRCUIT_OPEN", provider, f"Circuit breaker open for {provider}")


class SandboxError(CodevibeError):
    pass


class SandboxNotFoundError(SandboxError):
    def __init__(self, sandbox_id: str) -> None:
        super().__init__("SANDBOX_NOT_FOUND", f"Sandbox {sandbox_id} not found or expired")
        self.sandbox_id = sandbox_id


class SandboxCreateError(SandboxError):
    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__("SANDBOX_CREATE_FAILED", message, cause)


class SandboxPathError(SandboxError):
    def __init__(self, path: str) -> None:
        super().__init__("SANDBOX_PATH_VIOLATION", f"Path outside sandbox: {path}")
        self.path = path


class CommandFailedError(SandboxError):
    def __init__(self, command: str, exit_code: int, stderr: str = "") -> None:
        super().__init__(
            "COMMAND_FAILED", f"Command failed with exit code {exit_code}: {stderr}".rstrip()
        )
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr


class ToolError(CodevibeError):
    def __init__(
        self, code: str, tool_name: str, message: str, cause: Exception | None = None
    ) -> None:
        super().__init__(code, message, cause)
        self.tool_name = tool_name


class ToolNotFoundError(ToolError):
    def __init__(self, tool_name: str) -> None:
        super().__init__("TOOL_NOT_FOUND", tool_name, f"Tool '{tool_name}' not found")


class ToolValidationError(ToolError):
    def __init__(self, tool_name: str, message: str, cause: Exception | None = None) -> None:
        super().__init__("TOOL_VALIDATION", tool_name, message, cause)


class ToolTimeoutError(ToolError):
    def __init__(self, tool_name: str, timeout_seconds: float) -> None:
        super().__init__(
            "TOOL_TIMEOUT", tool_name, f'Tool "{tool_name}" timed out after {timeout_seconds}s'
        )
        self.timeout_seconds = timeout_seconds


class BusClosedError(CodevibeError):
    def __init__(self) -> None:
        super().__init__("BUS_CLOSED", "Event bus has been shut down")
