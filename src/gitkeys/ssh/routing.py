"""SSH routing file (``~/.ssh/config``) reader and managed-block writer.

git-keys only ever rewrites regions delimited by its own markers::

    # BEGIN git-keys managed block - <id>
    Host github.com.work
        HostName github.com
        ...
    # END git-keys managed block

Everything outside those regions is preserved byte-for-byte. The parser
side (``parse_hosts``) reads the whole file, managed or not, for the
discovery scanner.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from gitkeys.exceptions import RoutingConfigError

logger = logging.getLogger(__name__)

BEGIN_MARKER = "# BEGIN git-keys managed block - "
END_MARKER = "# END git-keys managed block"

_BLOCK_RE = re.compile(
    r"^# BEGIN git-keys managed block - (?P<id>[^\n]+)\n.*?^# END git-keys managed block[^\n]*\n?",
    re.MULTILINE | re.DOTALL,
)
_DIRECTIVE_RE = re.compile(r"^\s*(?P<key>\S+?)\s*(?:=\s*|\s+)(?P<value>.*?)\s*$")


@dataclass
class RoutingEntry:
    """One ``Host`` stanza written inside a managed block."""

    alias: str
    hostname: str
    identity_file: str
    user: str = "git"
    extra: dict[str, str] = field(default_factory=dict)

    def render(self) -> list[str]:
        lines = [
            f"Host {self.alias}",
            f"    HostName {self.hostname}",
            f"    User {self.user}",
            f"    IdentityFile {self.identity_file}",
        ]
        lines.extend(f"    {key} {value}" for key, value in self.extra.items())
        return lines


@dataclass
class SSHConfigHost:
    """A ``Host`` entry found in the routing file that names an identity file.

    Attributes:
        host: First pattern of the ``Host`` line.
        hostname: ``HostName`` value, empty if not set.
        user: ``User`` value, empty if not set.
        identity_file: ``IdentityFile`` value with ``~`` expanded.
        port: ``Port`` value, empty if not set.
    """

    host: str
    hostname: str = ""
    user: str = ""
    identity_file: str = ""
    port: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "host": self.host,
            "hostname": self.hostname,
            "user": self.user,
            "identity_file": self.identity_file,
            "port": self.port,
        }


def _is_wildcard(pattern: str) -> bool:
    return "*" in pattern or "?" in pattern


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def render_block(block_id: str, entries: list[RoutingEntry]) -> str:
    lines = [BEGIN_MARKER + block_id]
    for entry in entries:
        lines.extend(entry.render())
    lines.append(END_MARKER)
    return "\n".join(lines) + "\n"


class RoutingConfig:
    """Reader/writer for one SSH routing file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> str:
        """Return the file contents, or an empty string if it is missing."""
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""
        except (OSError, UnicodeDecodeError) as exc:
            raise RoutingConfigError(f"cannot read {self.path}: {exc}") from exc

    def _write(self, content: str) -> None:
        created = not self.path.exists()
        try:
            self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
            self.path.write_text(content, encoding="utf-8")
            if created:
                os.chmod(self.path, 0o600)
        except OSError as exc:
            raise RoutingConfigError(f"cannot write {self.path}: {exc}") from exc

    # -- Managed blocks -----------------------------------------------------

    def managed_block_ids(self) -> list[str]:
        return [m.group("id").strip() for m in _BLOCK_RE.finditer(self.read())]

    def get_block(self, block_id: str) -> str | None:
        for match in _BLOCK_RE.finditer(self.read()):
            if match.group("id").strip() == block_id:
                return match.group(0)
        return None

    def upsert(self, block_id: str, entries: list[RoutingEntry]) -> None:
        """Replace (or append) the managed block *block_id*.

        Raises:
            RoutingConfigError: If the file cannot be read or written.
        """
        content = self.read()
        block = render_block(block_id, entries)

        for match in _BLOCK_RE.finditer(content):
            if match.group("id").strip() == block_id:
                content = content[:match.start()] + block + content[match.end():]
                break
        else:
            if content and not content.endswith("\n"):
                content += "\n"
            if content and not content.endswith("\n\n"):
                content += "\n"
            content += block

        self._write(content)
        logger.info("Updated managed block %s in %s", block_id, self.path)

    def remove_block(self, block_id: str) -> bool:
        content = self.read()
        for match in _BLOCK_RE.finditer(content):
            if match.group("id").strip() == block_id:
                self._write(content[:match.start()] + content[match.end():])
                logger.info("Removed managed block %s from %s", block_id, self.path)
                return True
        return False

    def remove_all_managed_blocks(self) -> int:
        """Remove every managed block. Returns the number removed."""
        content = self.read()
        new_content, count = _BLOCK_RE.subn("", content)
        if count:
            new_content = re.sub(r"\n{3,}", "\n\n", new_content)
            self._write(new_content)
            logger.info("Removed %d managed blocks from %s", count, self.path)
        return count

    def backup(self) -> Path | None:
        """Copy the file to ``<file>.backup``. Returns None if it is missing."""
        if not self.path.exists():
            return None
        dest = self.path.with_name(self.path.name + ".backup")
        try:
            shutil.copy2(self.path, dest)
        except OSError as exc:
            raise RoutingConfigError(f"cannot back up {self.path}: {exc}") from exc
        logger.debug("Backed up %s to %s", self.path, dest)
        return dest

    # -- Parsing ------------------------------------------------------------

    def parse_hosts(self) -> list[SSHConfigHost]:
        """Parse ``Host`` entries that declare an ``IdentityFile``.

        Wildcard entries (``*``, or any pattern containing ``*``/``?``) and
        ``Match`` blocks are skipped. Directive names match
        case-insensitively; the first ``IdentityFile`` wins.
        """
        hosts: list[SSHConfigHost] = []
        current: SSHConfigHost | None = None

        for raw in self.read().splitlines():
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            match = _DIRECTIVE_RE.match(line)
            if not match:
                continue
            key = match.group("key").lower()
            value = _unquote(match.group("value"))

            if key == "host":
                patterns = value.split()
                if not patterns or _is_wildcard(patterns[0]):
                    current = None
                    continue
                current = SSHConfigHost(host=patterns[0])
                hosts.append(current)
            elif key == "match":
                current = None
            elif current is None:
                continue
            elif key == "hostname":
                current.hostname = value
            elif key == "user":
                current.user = value
            elif key == "port":
                current.port = value
            elif key == "identityfile" and not current.identity_file:
                current.identity_file = str(Path(value).expanduser())

        return [h for h in hosts if h.identity_file]
