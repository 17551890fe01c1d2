"""Adapters around the external lossless optimizer binaries."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

from .config import DEFAULT_JPEG_TOOL, DEFAULT_PNG_TOOL, DEFAULT_TOOL_TIMEOUT, RunConfig
from .errors import OptimizerInvocationFailure
from .models import ImageFormat

logger = logging.getLogger("imgsqueeze")


class OptimizerAdapter:
    """Runs one external tool over a local file and interprets its output.

    Subclasses supply the command line and the phrases that signal a
    successful run. A tool that runs but reports failure yields
    ``(False, output)``; only a tool that cannot be launched or exceeds
    the timeout raises :class:`OptimizerInvocationFailure`.
    """

    format: ImageFormat = ImageFormat.UNSUPPORTED
    success_phrases: Sequence[str] = ()

    def __init__(self, binary: str, timeout: float = DEFAULT_TOOL_TIMEOUT) -> None:
        self.binary = binary
        self.timeout = timeout

    def build_command(self, path: Path) -> List[str]:
        raise NotImplementedError

    def is_success(self, output: str) -> bool:
        lowered = output.lower()
        return any(phrase.lower() in lowered for phrase in self.success_phrases)

    def optimize(self, path: Path) -> Tuple[bool, str]:
        """Optimize ``path`` in place and report whether the tool succeeded."""
        command = self.build_command(path)
        logger.debug("Running %s", " ".join(command))
        try:
            completed = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise OptimizerInvocationFailure(
                f"{self.binary} is not installed or not on PATH"
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise OptimizerInvocationFailure(
                f"{self.binary} did not finish within {self.timeout:.0f}s on {path.name}"
            ) from exc
        except OSError as exc:
            raise OptimizerInvocationFailure(f"Unable to launch {self.binary}: {exc}") from exc

        output = completed.stdout or ""
        logger.debug("%s exited with %d:\n%s", self.binary, completed.returncode, output)
        return self.is_success(output), output


class PngOptimizer(OptimizerAdapter):
    """Lossless PNG recompression with optipng."""

    format = ImageFormat.PNG
    success_phrases = ("Input file size", "already optimized")

    def __init__(self, binary: str = DEFAULT_PNG_TOOL, timeout: float = DEFAULT_TOOL_TIMEOUT) -> None:
        super().__init__(binary, timeout)

    def build_command(self, path: Path) -> List[str]:
        return [self.binary, str(path)]


class JpegOptimizer(OptimizerAdapter):
    """Lossless Huffman-table optimization with jpegtran, written in place."""

    format = ImageFormat.JPEG
    # libjpeg traces "End Of Image"; matching is case-insensitive.
    success_phrases = ("End of Image",)

    def __init__(self, binary: str = DEFAULT_JPEG_TOOL, timeout: float = DEFAULT_TOOL_TIMEOUT) -> None:
        super().__init__(binary, timeout)

    def build_command(self, path: Path) -> List[str]:
        return [self.binary, "-optimize", "-verbose", "-outfile", str(path), str(path)]


def default_optimizers(config: RunConfig) -> Dict[ImageFormat, OptimizerAdapter]:
    """Build the adapter registry keyed by format tag."""
    return {
        ImageFormat.PNG: PngOptimizer(config.png_tool, config.tool_timeout),
        ImageFormat.JPEG: JpegOptimizer(config.jpeg_tool, config.tool_timeout),
    }
