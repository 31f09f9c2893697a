"""
Piston sandbox client.
Runs one program with stdin and normalises the response into an ExecutionResult
with a structured error kind, so callers never sniff output text.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from codenest import config
from codenest.progress.errors import CodeNestError
from codenest.progress.models import ErrorKind, Language

logger = logging.getLogger(__name__)

LANGUAGE_MAP = {
    Language.JAVA: {"language": "java", "version": "15.0.2"},
    Language.PYTHON: {"language": "python", "version": "3.10.0"},
    Language.JAVASCRIPT: {"language": "javascript", "version": "18.15.0"},
    Language.CPP: {"language": "c++", "version": "10.2.0"},
    Language.C: {"language": "c", "version": "10.2.0"},
}

NO_OUTPUT_MESSAGE = "Program executed successfully with no output."

# ==================== ERRORS ====================

class ExecutionError(CodeNestError):
    pass

class ExecutionTimeoutError(ExecutionError):
    pass

class ExecutionServiceUnavailableError(ExecutionError):
    pass

class UnsupportedLanguageError(CodeNestError):
    pass

# ==================== RESULT ====================

@dataclass
class ExecutionResult:
    stdout: str = ""
    stderr: str = ""
    compile_error: Optional[str] = None
    time_ms: int = 0
    memory_bytes: Optional[int] = None
    error_kind: Optional[ErrorKind] = None

    @property
    def success(self) -> bool:
        return self.error_kind is None

    @property
    def memory_mb(self) -> Optional[float]:
        if self.memory_bytes is None:
            return None
        return round(self.memory_bytes / (1024 * 1024), 2)

    @property
    def error_message(self) -> Optional[str]:
        if self.error_kind == ErrorKind.COMPILE_ERROR:
            return f"Compilation Error:\n{self.compile_error}".strip()
        if self.error_kind == ErrorKind.TIME_LIMIT and not self.stderr.strip():
            return "Time Limit Exceeded"
        if self.error_kind is not None:
            return f"Runtime Error:\n{self.stderr}".strip()
        return None

    @property
    def output(self) -> str:
        """What the console shows for this run"""
        if self.error_kind is not None:
            return self.error_message
        return self.stdout.strip() or NO_OUTPUT_MESSAGE


def resolve_language(language) -> Language:
    try:
        return Language(language)
    except ValueError:
        raise UnsupportedLanguageError(f"Unsupported language: {language}")


def source_filename(language: Language) -> str:
    if language == Language.JAVA:
        return "Main.java"
    return f"main.{language.value}"


def parse_piston_response(data: dict) -> ExecutionResult:
    compile_stage = data.get("compile") or {}
    run_stage = data.get("run") or {}

    compile_error = None
    if (compile_stage.get("stderr") or "").strip():
        compile_error = compile_stage["stderr"]
    elif compile_stage.get("code") not in (None, 0):
        compile_error = compile_stage.get("output") or "Compilation failed"

    stdout = run_stage.get("stdout") or ""
    if not stdout and not compile_error:
        stdout = compile_stage.get("stdout") or ""
    stderr = run_stage.get("stderr") or ""

    if compile_error:
        error_kind = ErrorKind.COMPILE_ERROR
    elif run_stage.get("signal") == "SIGKILL":
        error_kind = ErrorKind.TIME_LIMIT
    elif stderr.strip():
        error_kind = ErrorKind.RUNTIME_ERROR
    else:
        error_kind = None

    run_time = run_stage.get("wall_time", run_stage.get("time")) or 0

    return ExecutionResult(
        stdout=stdout,
        stderr=stderr,
        compile_error=compile_error,
        time_ms=round(run_time),
        memory_bytes=run_stage.get("memory"),
        error_kind=error_kind,
    )

# ==================== CLIENT ====================

class PistonClient:
    def __init__(
        self,
        base_url: str = config.PISTON_API_URL,
        timeout: float = config.EXECUTION_TIMEOUT_SECONDS,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient()

    async def execute(self, code: str, language, stdin: str = "") -> ExecutionResult:
        lang = resolve_language(language)
        runtime = LANGUAGE_MAP[lang]

        payload = {
            "language": runtime["language"],
            "version": runtime["version"],
            "files": [{"name": source_filename(lang), "content": code}],
            "stdin": stdin or "",
            "args": [],
            "compile_timeout": config.COMPILE_TIMEOUT_MS,
            "run_timeout": config.RUN_TIMEOUT_MS,
            "compile_memory_limit": -1,
            "run_memory_limit": -1,
        }

        try:
            response = await self._client.post(
                f"{self.base_url}/execute",
                json=payload,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            logger.warning("Piston request timed out after %ss: %s", self.timeout, e)
            raise ExecutionTimeoutError("Code execution timed out")
        except httpx.RequestError as e:
            logger.warning("Piston request failed: %s", e)
            raise ExecutionServiceUnavailableError(f"Execution service unreachable: {str(e)[:100]}")

        if response.status_code != 200:
            detail = response.text[:200]
            logger.warning("Piston returned HTTP %s: %s", response.status_code, detail)
            raise ExecutionServiceUnavailableError(f"Execution service error: {detail}")

        try:
            data = response.json()
        except ValueError:
            raise ExecutionServiceUnavailableError("Execution service returned malformed response")
        if not isinstance(data, dict):
            raise ExecutionServiceUnavailableError("Execution service returned malformed response")

        return parse_piston_response(data)

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()
