"""Repository remote inspection.

Walks a directory (at most two levels deep) for git repositories, reads
each ``.git/config`` for remote URLs, and classifies the URLs into
hosting platforms.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from gitkeys.config.models import PlatformType
from gitkeys.discovery.models import DiscoveredPlatform

logger = logging.getLogger(__name__)

MAX_WALK_DEPTH = 2

_REMOTE_URL_RE = re.compile(r'\[remote\s+"[^"]*"\]\s+url\s*=\s*(.+)')


def parse_remote_url(url: str) -> tuple[PlatformType, str, str] | None:
    """Classify a git remote URL.

    Supports ``git@host:group/repo``, ``ssh://git@host/group/repo`` and
    HTTP(S) URLs. A host containing ``github.com`` is GitHub; a host
    containing ``gitlab`` is GitLab, self-hosted unless it is exactly
    ``gitlab.com``.

    Returns:
        ``(platform_type, base_url, group)``, or None for other hosts and
        schemes.
    """
    url = url.strip()
    host = ""
    group = ""

    if url.startswith("ssh://"):
        rest = url[len("ssh://"):]
        rest = rest.split("@", 1)[-1]
        host_port, _, path = rest.partition("/")
        host = host_port.split(":", 1)[0]
        group = path.split("/", 1)[0]
    elif url.startswith("git@"):
        rest = url[len("git@"):]
        host, sep, path = rest.partition(":")
        if not sep:
            return None
        group = path.split("/", 1)[0]
    elif url.startswith(("http://", "https://")):
        rest = url.split("://", 1)[1]
        parts = rest.split("/")
        if len(parts) < 2:
            return None
        host = parts[0].split("@", 1)[-1].split(":", 1)[0]
        group = parts[1]
    else:
        return None

    if not host:
        return None
    if "github.com" in host:
        return PlatformType.GITHUB, "", group
    if "gitlab" in host:
        base_url = "" if host == "gitlab.com" else f"https://{host}"
        return PlatformType.GITLAB, base_url, group
    return None


def read_remote_urls(git_config: Path) -> list[str]:
    try:
        text = git_config.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.debug("Cannot read %s: %s", git_config, exc)
        return []
    return [m.group(1).strip() for m in _REMOTE_URL_RE.finditer(text)]


def _iter_repo_configs(root: Path):
    """Yield ``.git/config`` paths for *root* and directories up to two levels below."""
    for dirpath, dirnames, _ in os.walk(root):
        current = Path(dirpath)
        depth = 0 if current == root else len(current.relative_to(root).parts)
        if depth >= MAX_WALK_DEPTH:
            dirnames[:] = []
        else:
            dirnames[:] = sorted(d for d in dirnames if d != ".git")
        config = current / ".git" / "config"
        if config.is_file():
            yield config


def discover_platforms(directory: str | Path, home: Path | None = None) -> list[DiscoveredPlatform]:
    """Infer hosting platforms from the repositories under *directory*.

    Platforms are deduplicated by ``(type, base_url)``; each additional
    remote bumps ``repo_count`` and contributes its group if new.
    """
    raw = str(directory).strip().removeprefix("gitdir:").rstrip("/")
    if raw.startswith("~"):
        raw = str(home or Path.home()) + raw[1:]
    root = Path(raw)
    if not root.is_dir():
        return []

    found: dict[str, DiscoveredPlatform] = {}
    for config in _iter_repo_configs(root):
        for url in read_remote_urls(config):
            parsed = parse_remote_url(url)
            if parsed is None:
                continue
            platform_type, base_url, group = parsed
            key = f"{platform_type.value}:{base_url}"
            platform = found.get(key)
            if platform is None:
                platform = found[key] = DiscoveredPlatform(type=platform_type, base_url=base_url)
            platform.repo_count += 1
            if group and group not in platform.groups:
                platform.groups.append(group)

    logger.debug("Discovered %d platforms under %s", len(found), root)
    return list(found.values())
