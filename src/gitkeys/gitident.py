"""Git identity switching by directory.

For each platform with a ``git_dir`` pattern, a small git config file
``~/.gitconfig-<persona>-<type>-<account>`` sets ``user.name``/
``user.email`` and rewrites the platform's URLs to the persona's SSH
host alias, so repositories under that directory use the right identity
and key. A managed region in ``~/.gitconfig`` pulls the files in with
``[includeIf "gitdir:..."]`` stanzas.
"""

from __future__ import annotations

import logging
import re
import shutil
from pathlib import Path

from gitkeys.config.models import DeclaredConfig, Persona, Platform
from gitkeys.exceptions import GitKeysError
from gitkeys.lifecycle.apply import host_alias
from gitkeys.platforms.registry import platform_host

logger = logging.getLogger(__name__)

BEGIN_MARKER = "# BEGIN git-keys managed conditional includes"
END_MARKER = "# END git-keys managed conditional includes"
BACKUP_SUFFIX = ".backup-git-keys"

_REGION_RE = re.compile(
    re.escape(BEGIN_MARKER) + r"\n(?P<body>.*?)" + re.escape(END_MARKER) + r"\n?",
    re.DOTALL,
)
_PATH_RE = re.compile(r"^\s*path\s*=\s*(.+?)\s*$", re.MULTILINE)


def normalize_git_dir(pattern: str, home: Path) -> str:
    """Expand a leading ``~/`` and make sure the pattern ends with ``/``."""
    pattern = pattern.strip()
    if pattern.startswith("~/"):
        pattern = str(home / pattern[2:])
    if not pattern.endswith("/"):
        pattern += "/"
    return pattern


def identity_file_path(home: Path, persona: Persona, platform: Platform) -> Path:
    return home / f".gitconfig-{persona.name}-{platform.type.value}-{platform.account}"


def render_identity_file(persona: Persona, platform: Platform) -> str:
    host = platform_host(platform)
    alias = host_alias(persona, platform)
    return (
        f"# Git configuration for {persona.name} <{persona.email}>\n"
        f"# Platform: {platform.type.value}/{platform.account}\n"
        "# Managed by git-keys\n\n"
        "[user]\n"
        f"\tname = {persona.name}\n"
        f"\temail = {persona.email}\n\n"
        f'[url "git@{alias}:"]\n'
        f"\tinsteadOf = git@{host}:\n"
        f"\tinsteadOf = https://{host}/\n"
    )


def render_include(git_dir: str, path: Path) -> str:
    return f'[includeIf "gitdir:{git_dir}"]\n\tpath = {path}\n'


def replace_managed_region(content: str, entries: list[str]) -> str:
    """Replace (or append) the managed region; an empty list removes it."""
    region = BEGIN_MARKER + "\n" + "".join(entries) + END_MARKER + "\n" if entries else ""
    match = _REGION_RE.search(content)
    if match:
        before = content[:match.start()].rstrip("\n")
        after = content[match.end():].lstrip("\n")
        parts = [p for p in (before, region.rstrip("\n"), after.rstrip("\n")) if p]
        return "\n\n".join(parts) + "\n" if parts else ""
    if not region:
        return content
    before = content.rstrip("\n")
    return (before + "\n\n" if before else "") + region


class GitIdentitySwitcher:
    """Writes and removes the per-platform git identity files.

    Args:
        home: Directory holding ``.gitconfig`` and the generated files.
    """

    def __init__(self, home: Path) -> None:
        self.home = Path(home)
        self.gitconfig = self.home / ".gitconfig"

    def _read(self) -> str:
        try:
            return self.gitconfig.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""
        except OSError as exc:
            raise GitKeysError(f"cannot read {self.gitconfig}: {exc}") from exc

    def _write(self, content: str) -> None:
        try:
            self.gitconfig.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise GitKeysError(f"cannot write {self.gitconfig}: {exc}") from exc

    def backup(self) -> Path | None:
        if not self.gitconfig.exists():
            return None
        dest = self.gitconfig.with_name(self.gitconfig.name + BACKUP_SUFFIX)
        try:
            shutil.copy2(self.gitconfig, dest)
        except OSError as exc:
            raise GitKeysError(f"cannot back up {self.gitconfig}: {exc}") from exc
        return dest

    def managed_paths(self) -> list[Path]:
        """Include paths listed in the managed region."""
        match = _REGION_RE.search(self._read())
        if not match:
            return []
        return [Path(p) for p in _PATH_RE.findall(match.group("body"))]

    def apply(self, config: DeclaredConfig) -> list[Path]:
        """Write identity files and the managed region for every ``git_dir``.

        Returns:
            The identity files written.
        """
        entries: list[str] = []
        written: list[Path] = []
        for persona in config.personas:
            for platform in persona.platforms:
                if not platform.git_dir:
                    continue
                path = identity_file_path(self.home, persona, platform)
                try:
                    path.write_text(render_identity_file(persona, platform), encoding="utf-8")
                except OSError as exc:
                    logger.warning("Could not write %s: %s", path, exc)
                    continue
                written.append(path)
                entries.append(render_include(platform.git_dir, path))

        if entries:
            self.backup()
            self._write(replace_managed_region(self._read(), entries))
            logger.info("Updated %s with %d conditional includes", self.gitconfig, len(entries))
        return written

    def remove(self) -> list[Path]:
        """Remove the managed region and the identity files it referenced."""
        paths = self.managed_paths()
        content = self._read()
        if _REGION_RE.search(content):
            self.backup()
            self._write(replace_managed_region(content, []))

        removed: list[Path] = []
        for path in paths:
            if not path.name.startswith(".gitconfig-"):
                continue
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.warning("Could not remove %s: %s", path, exc)
                continue
            removed.append(path)
        return removed
