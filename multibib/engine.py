"""Citation formatting engine: pandoc's built-in citeproc, run as a subprocess.

An engine is any callable ``(doc, quiet) -> doc``. ``PandocCiteproc`` pipes the
document through ``pandoc --from=json --to=json --citeproc``.
"""

from __future__ import annotations

import logging
import re
import subprocess
import tempfile
from pathlib import Path
from typing import Protocol

import orjson
import pandoc
from pandoc.types import Pandoc

logger = logging.getLogger(__name__)

# --citeproc was added in pandoc 2.11
MIN_PANDOC_VERSION = (2, 11)


class EngineError(RuntimeError):
    """Citeproc failed or is unavailable. Never recovered from locally."""


class Engine(Protocol):
    def __call__(self, doc: Pandoc, quiet: bool = False) -> Pandoc: ...


class PandocCiteproc:
    """Run citeproc through the pandoc executable.

    Usage:
        engine = PandocCiteproc(resource_path="refs:.")
        resolved = engine(doc)
    """

    def __init__(
        self,
        pandoc_path: str = "pandoc",
        resource_path: str | None = None,
        timeout: float | None = None,
    ):
        self.pandoc_path = pandoc_path
        self.resource_path = resource_path
        self.timeout = timeout
        self.version: tuple[int, ...] | None = None

    def __call__(self, doc: Pandoc, quiet: bool = False) -> Pandoc:
        if self.version is None:
            self.version = check_version(self.pandoc_path, timeout=self.timeout)

        payload = pandoc.write(doc, format="json")
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")

        with tempfile.TemporaryDirectory(prefix="multibib-") as tmp_dir:
            log_path = Path(tmp_dir) / "citeproc-log.json"
            args = [
                self.pandoc_path,
                "--from=json",
                "--to=json",
                "--citeproc",
                # diagnostics come back through the JSON log instead of stderr
                "--quiet",
                f"--log={log_path}",
            ]
            if self.resource_path:
                args.append(f"--resource-path={self.resource_path}")

            result = _run(args, payload, self.timeout)
            forward_log(log_path, quiet=quiet)

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise EngineError(
                f"citeproc failed (exit {result.returncode}): {stderr or 'no output'}"
            )

        try:
            return pandoc.read(result.stdout, format="json")
        except Exception as e:
            raise EngineError(f"Unreadable citeproc output: {e}") from e


def check_version(pandoc_path: str = "pandoc", timeout: float | None = None) -> tuple[int, ...]:
    """Return the pandoc version, raising EngineError if it predates --citeproc."""
    result = _run([pandoc_path, "--version"], None, timeout)
    if result.returncode != 0:
        raise EngineError(f"{pandoc_path} --version failed (exit {result.returncode})")

    first_line = (result.stdout or "").splitlines()[0] if result.stdout else ""
    match = re.search(r"(\d+(?:\.\d+)+)", first_line)
    if not match:
        raise EngineError(f"Cannot determine pandoc version from: {first_line!r}")

    version = tuple(int(part) for part in match.group(1).split("."))
    if version < MIN_PANDOC_VERSION:
        raise EngineError(
            f"pandoc {match.group(1)} is too old; --citeproc needs 2.11 or later"
        )
    logger.debug("Using pandoc %s at %s", match.group(1), pandoc_path)
    return version


def forward_log(log_path: Path, quiet: bool = False) -> int:
    """Re-emit pandoc's JSON log messages. Returns the number forwarded.

    Quiet runs log at DEBUG so topic-scoped runs don't repeat warnings
    already reported by the global run.
    """
    if not log_path.exists():
        return 0
    raw = log_path.read_bytes()
    if not raw.strip():
        return 0

    try:
        messages = orjson.loads(raw)
    except orjson.JSONDecodeError:
        logger.debug("Ignoring unreadable pandoc log %s", log_path)
        return 0

    for message in messages:
        level = logging.DEBUG if quiet else _level(message.get("verbosity"))
        logger.log(level, "citeproc: %s", format_log_message(message))
    return len(messages)


def format_log_message(message: dict) -> str:
    """``{"type": "CitationNotFound", "key": "x"}`` -> ``CitationNotFound (key=x)``"""
    kind = message.get("type", "message")
    details = ", ".join(
        f"{key}={value}"
        for key, value in message.items()
        if key not in ("type", "verbosity")
    )
    return f"{kind} ({details})" if details else kind


def _level(verbosity: str | None) -> int:
    return {"ERROR": logging.ERROR, "INFO": logging.INFO}.get(
        verbosity or "", logging.WARNING
    )


def _run(args: list[str], payload: str | None, timeout: float | None):
    try:
        return subprocess.run(
            args,
            input=payload,
            capture_output=True,
            text=True,
            encoding="utf-8",
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise EngineError(f"pandoc executable not found: {args[0]}") from e
    except subprocess.TimeoutExpired as e:
        raise EngineError(f"citeproc timed out after {timeout}s") from e
