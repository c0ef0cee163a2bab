"""Decode Claude Code project directory names back into paths."""

import re

_COMPOSITE_SUFFIX_RE = re.compile(r'^(.+?)::[0-9a-fA-F]{8}$')


def decode_project_dir(dir_name: str) -> str:
    """Best-effort path for a Claude project directory name.

    -home-wiz-AI-LLM → /home/wiz/AI/LLM

    Lossy: hyphens inside the original path segments also become slashes,
    so this is only used when the logs carry no working directory.
    """
    if not dir_name:
        return ""
    match = _COMPOSITE_SUFFIX_RE.match(dir_name)
    if match:
        dir_name = match.group(1)
    return dir_name.replace("-", "/")


def project_display_name(project_path: str) -> str:
    """Last path segment, used as a short project label."""
    return project_path.rstrip("/").rsplit("/", 1)[-1] if project_path else ""
