"""Obtain the cargo metadata snapshot a dependency tree is built from."""

from __future__ import annotations

import json
import logging
import subprocess
import sys
from pathlib import Path
from typing import Any

from crategraph.core.config import Config
from crategraph.core.errors import MetadataError

logger = logging.getLogger(__name__)

MANIFEST_NAME = "Cargo.toml"
# cargo may have to download the index on a cold cache
CARGO_METADATA_TIMEOUT = 300


def find_manifest_dir(start: Path) -> Path:
    """Return the first directory at or above ``start`` containing Cargo.toml."""
    start = Path(start).resolve()
    if start.is_file():
        start = start.parent
    for directory in (start, *start.parents):
        if (directory / MANIFEST_NAME).is_file():
            return directory
    raise MetadataError(f"Couldn't find '{MANIFEST_NAME}' in '{start}' or any parent directory")


def _decode(text: str, origin: str) -> dict[str, Any]:
    try:
        metadata = json.loads(text)
    except json.JSONDecodeError as e:
        raise MetadataError(f"Couldn't decode metadata from {origin}: {e}") from e
    if not isinstance(metadata, dict):
        raise MetadataError(f"Expected a JSON object as metadata from {origin}")
    return metadata


def fetch_metadata(manifest_dir: Path, config: Config) -> dict[str, Any]:
    """Run ``cargo metadata`` in ``manifest_dir`` and decode its output."""
    cmd = [config.cargo, "metadata", "--format-version", "1"]
    if config.offline:
        cmd.append("--offline")
    if config.verbose:
        logger.info("Running '%s' in %s", " ".join(cmd), manifest_dir)

    try:
        result = subprocess.run(
            cmd,
            cwd=manifest_dir,
            capture_output=True,
            text=True,
            timeout=CARGO_METADATA_TIMEOUT,
        )
    except FileNotFoundError as e:
        raise MetadataError(f"Couldn't run '{config.cargo}': executable not found") from e
    except subprocess.TimeoutExpired as e:
        raise MetadataError(f"'{' '.join(cmd)}' timed out after {CARGO_METADATA_TIMEOUT}s") from e

    if result.returncode != 0:
        raise MetadataError(
            f"'{' '.join(cmd)}' failed with exit code {result.returncode}:\n{result.stderr.strip()}"
        )
    return _decode(result.stdout, "cargo metadata")


def load_metadata(path: str | Path) -> dict[str, Any]:
    """Read a saved ``cargo metadata`` snapshot; ``-`` reads from stdin."""
    if str(path) == "-":
        return _decode(sys.stdin.read(), "stdin")
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise MetadataError(f"Couldn't read metadata file '{path}': {e}") from e
    return _decode(text, f"'{path}'")
