"""Run the external build script and capture its outcome."""
import errno
import subprocess
import sys
from dataclasses import dataclass
from typing import Optional

SUCCESS_MESSAGE = "Build completed successfully"
FAILURE_MESSAGE = "Build failed"


@dataclass(frozen=True)
class BuildResult:
    success: bool
    message: str
    stdout: str = ""
    stderr: str = ""
    error: str = ""

    def to_json(self) -> dict:
        if self.success:
            return {"success": True, "message": self.message, "output": self.stdout}
        return {
            "success": False,
            "message": self.message,
            "error": self.error,
            "details": self.stderr,
        }


def _spawn(argv, cwd: Optional[str]) -> subprocess.CompletedProcess:
    return subprocess.run(
        argv,
        cwd=cwd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        errors="replace",
    )


def run_build(build_command: str, cwd: Optional[str] = None) -> BuildResult:
    """Run ``build_command`` to completion and return a BuildResult.

    Only the exit status decides success. Build tools print warnings on
    stderr, so stderr on a zero exit is logged and otherwise ignored.
    There is no timeout: a hung script blocks the calling request.
    """
    print(f"[BUILD] Running {build_command}")
    try:
        try:
            proc = _spawn([build_command], cwd)
        except OSError as e:
            if e.errno != errno.ENOEXEC:
                raise
            # No shebang line: let the shell interpret the script, still without arguments
            proc = _spawn(["/bin/sh", build_command], cwd)
    except OSError as e:
        print(f"[BUILD] Error executing build script: {e}", file=sys.stderr)
        return BuildResult(False, FAILURE_MESSAGE, error=str(e))

    if proc.returncode != 0:
        error = f"Command failed: {build_command} (exit status {proc.returncode})"
        print(f"[BUILD] Error executing build script: {error}", file=sys.stderr)
        if proc.stderr:
            print(f"[BUILD] stderr:\n{proc.stderr}", file=sys.stderr)
        return BuildResult(False, FAILURE_MESSAGE, proc.stdout, proc.stderr, error)

    print(f"[BUILD] Build output: {proc.stdout}")
    if proc.stderr:
        print(f"[BUILD] Build stderr: {proc.stderr}", file=sys.stderr)
    return BuildResult(True, SUCCESS_MESSAGE, proc.stdout, proc.stderr)
