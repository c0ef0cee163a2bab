"""Tolerant JSONL reading for agent session logs."""

import logging
from pathlib import Path
from typing import Iterator

import orjson

logger = logging.getLogger(__name__)

# Max size for a single JSONL line (10MB)
MAX_LINE_SIZE = 10 * 1024 * 1024


def iter_json_objects(file_path: str | Path) -> Iterator[dict]:
    """Stream every JSON object line of a file.

    Raises OSError if the file can't be opened. Malformed lines, non-object
    lines and lines exceeding MAX_LINE_SIZE are skipped.
    """
    path = Path(file_path)
    line_num = 0
    with open(path, "rb") as f:
        for line in f:
            line_num += 1
            line = line.strip()
            if not line:
                continue

            if len(line) > MAX_LINE_SIZE:
                logger.warning(
                    "Line %d in %s exceeds %dMB, skipping",
                    line_num, path.name, MAX_LINE_SIZE // (1024 * 1024),
                )
                continue

            try:
                raw = orjson.loads(line)
            except orjson.JSONDecodeError as e:
                logger.debug("Malformed JSON at line %d in %s: %s", line_num, path.name, e)
                continue

            if isinstance(raw, dict):
                yield raw


def read_head_objects(file_path: str | Path, max_bytes: int, max_lines: int) -> list[dict]:
    """Parse the JSON object lines found in the first ``max_bytes`` of a file.

    Used for lightweight metadata scans. Only the first ``max_lines`` lines
    are considered; a line cut off by the byte limit simply fails to parse.
    Raises OSError if the file can't be read.
    """
    with open(file_path, "rb") as f:
        chunk = f.read(max_bytes)

    objects = []
    for line in chunk.split(b"\n")[:max_lines]:
        line = line.strip()
        if not line:
            continue
        try:
            raw = orjson.loads(line)
        except orjson.JSONDecodeError:
            continue
        if isinstance(raw, dict):
            objects.append(raw)
    return objects
