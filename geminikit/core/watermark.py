"""Best-effort SynthID watermark removal via an external tool.

The default remover runs a local WatermarkRemover-AI checkout
(Florence-2 detection + LaMa inpainting) in its own virtualenv:

    <tool>/venv/bin/python <tool>/remwm.py <input> <temp-output>

Removal is optional. Failures are logged and the original file is kept.
"""

import asyncio
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from .browser import debug_log, log

ENTRY_SCRIPT = "remwm.py"
# Lines the tool prints while loading models; not worth surfacing
NOISE_MARKERS = ("Loading weights",)


@dataclass(frozen=True)
class CleanResult:
    """Outcome of one removal attempt. `path` is the cleaned file on success."""

    ok: bool
    path: Path | None = None
    message: str = ""
    skipped: bool = False


class WatermarkRemover(ABC):
    """Capability that produces a cleaned copy of an image file."""

    @abstractmethod
    async def clean(self, path: Path) -> CleanResult:
        """Write a cleaned copy of `path` somewhere else and report where."""
        pass


def temp_output_path(path: Path) -> Path:
    """Sibling temp path; the tool refuses to overwrite its input."""
    return path.with_name(f"{path.name}.clean{path.suffix or '.png'}")


def last_meaningful_line(output: str) -> str:
    lines = [line.strip() for line in output.strip().splitlines()]
    lines = [line for line in lines if line and not any(marker in line for marker in NOISE_MARKERS)]
    return lines[-1] if lines else ""


class SubprocessWatermarkRemover(WatermarkRemover):
    def __init__(self, tool_dir: str | os.PathLike, timeout: float = 120.0):
        self.tool_dir = Path(tool_dir).expanduser()
        self.timeout = timeout

    @property
    def script(self) -> Path:
        return self.tool_dir / ENTRY_SCRIPT

    @property
    def interpreter(self) -> Path:
        if os.name == "nt":
            return self.tool_dir / "venv" / "Scripts" / "python.exe"
        return self.tool_dir / "venv" / "bin" / "python"

    async def clean(self, path: Path) -> CleanResult:
        if not self.script.exists():
            return CleanResult(ok=False, skipped=True, message=f"WatermarkRemover-AI not found at {self.tool_dir}")

        tmp_out = temp_output_path(path)
        debug_log(f"Running {self.interpreter} {self.script} {path} {tmp_out}")

        proc = await asyncio.create_subprocess_exec(
            str(self.interpreter),
            str(self.script),
            str(path),
            str(tmp_out),
            cwd=str(self.tool_dir),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            await _kill(proc)
            return CleanResult(ok=False, path=tmp_out, message=f"timed out after {self.timeout:g}s")
        except BaseException:
            # Cancelled: kill the tool before it writes tmp_out
            await _kill(proc)
            raise

        output = last_meaningful_line(stdout.decode(errors="replace"))
        if proc.returncode != 0:
            error = last_meaningful_line(stderr.decode(errors="replace")) or output
            return CleanResult(ok=False, path=tmp_out, message=f"exit code {proc.returncode}: {error}")
        if not tmp_out.exists():
            return CleanResult(ok=False, message=f"tool produced no output at {tmp_out.name}")
        return CleanResult(ok=True, path=tmp_out, message=output)


async def remove_watermark(path: str | os.PathLike, remover: WatermarkRemover | None) -> bool:
    """Replace `path` with a cleaned copy. Never raises; returns True when replaced."""
    if remover is None:
        return False

    path = Path(path)
    result = None
    try:
        result = await remover.clean(path)
        if result.skipped:
            log(f"Watermark removal skipped: {result.message}", "○")
            return False
        if not result.ok or result.path is None:
            raise RuntimeError(result.message or "unknown error")

        # rename, not copy: the original is never half-written
        os.replace(result.path, path)
        if result.message:
            log(result.message, "○")
        log("Watermark removed", "✓")
        return True
    except asyncio.CancelledError:
        _discard(result.path if result and result.path else temp_output_path(path))
        raise
    except Exception as e:
        _discard(result.path if result and result.path else temp_output_path(path))
        log(f"Watermark removal skipped: {e}", "⚠")
        return False


async def _kill(proc):
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
        await proc.wait()


def _discard(tmp: Path | None):
    if tmp is None:
        return
    try:
        if tmp.exists():
            tmp.unlink()
    except OSError as e:
        debug_log(f"Could not delete {tmp}: {e}")
