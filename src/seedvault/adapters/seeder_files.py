"""Generated seeder artifacts.

- `SeederFile`: the generated `user_seeder.py`. Created from a versioned
  Jinja2 template, then only ever appended to inside its USERS region.
- `OrchestratorFile`: the application's `database_seeder.py`, which gets a
  single call to the generated seeder.

Existing entries are opaque text: they are counted, never parsed back.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Iterable, Sequence

from jinja2 import Environment, PackageLoader

from seedvault.core.domain.models import EncryptedUserRecord, InjectionResult, RegistrationResult
from seedvault.core.errors import ArtifactWriteFailure

logger = logging.getLogger(__name__)

TEMPLATE_VERSION = 1
SEEDER_TEMPLATE = "user_seeder.py.j2"
ENTRY_TEMPLATE = "_entry.py.j2"

USERS_REGION_RE = re.compile(
    r"^USERS: list\[dict\[str, str\]\] = \[\n(?P<body>.*?)^\]",
    re.MULTILINE | re.DOTALL,
)
_ENTRY_OPEN_RE = re.compile(r"^[ \t]*\{", re.MULTILINE)

_ENTRY_POINT_RE = re.compile(
    r"^(?P<indent>[ \t]*)def run\((?P<params>[^)]*)\)[^:\n]*:[ \t]*(?:#[^\n]*)?\n",
    re.MULTILINE,
)
_DOCSTRING_RE = re.compile(r'(?P<indent>[ \t]+)(?P<quote>"""|\'\'\')(?:.*?)(?P=quote)[^\n]*\n', re.DOTALL)


def _get_env() -> Environment:
    env = Environment(
        loader=PackageLoader("seedvault", "templates"),
        autoescape=False,
        trim_blocks=True,
        keep_trailing_newline=True,
    )
    # Python string literal; ciphertexts are ASCII so JSON quoting is valid Python.
    env.filters["pystr"] = lambda value: json.dumps(str(value))
    return env


def render_entry(index: int, record: EncryptedUserRecord) -> str:
    """Render one USERS entry, preceded by its `# <index>` comment."""

    macro = _get_env().get_template(ENTRY_TEMPLATE).module.entry
    return str(macro(index, record))


def render_seeder(records: Sequence[EncryptedUserRecord] = ()) -> str:
    """Render a complete seeder module containing `records`."""

    template = _get_env().get_template(SEEDER_TEMPLATE)
    return template.render(records=list(records), template_version=TEMPLATE_VERSION)


def count_entries(region_body: str) -> int:
    """Count entries by their opening brace lines (comments never start with `{`)."""

    return len(_ENTRY_OPEN_RE.findall(region_body))


def _write(path: Path, text: str) -> None:
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise ArtifactWriteFailure(path, str(exc)) from exc


class SeederFile:
    """The generated seeder module holding encrypted USERS entries."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def ensure_exists(self) -> bool:
        """Create the module from the template. Returns True when it was created."""

        if self.path.exists():
            return False
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ArtifactWriteFailure(self.path.parent, str(exc)) from exc
        _write(self.path, render_seeder())
        logger.info("Created %s from template v%d", self.path, TEMPLATE_VERSION)
        return True

    def append(self, records: Iterable[EncryptedUserRecord]) -> InjectionResult:
        """Append `records` to the USERS region, in order.

        Not idempotent: the same record appended twice yields two entries.
        When the region cannot be found nothing is written and the result has
        `matched=False`.
        """

        records = list(records)
        created = self.ensure_exists()
        text = self.path.read_text(encoding="utf-8")

        match = USERS_REGION_RE.search(text)
        if match is None:
            logger.warning("%s: USERS region not found, no entries appended", self.path)
            return InjectionResult(path=self.path, created=created, matched=False)

        body = match.group("body")
        existing = count_entries(body)
        rendered = "".join(
            render_entry(existing + position + 1, record) for position, record in enumerate(records)
        )
        if not rendered:
            return InjectionResult(path=self.path, created=created)

        start, end = match.span("body")
        _write(self.path, text[:start] + body + rendered + text[end:])
        logger.info("Appended %d entr(ies) to %s", len(records), self.path)
        return InjectionResult(
            path=self.path,
            created=created,
            appended=len(records),
            first_index=existing + 1,
        )

    def rebuild(self, records: Sequence[EncryptedUserRecord]) -> int:
        """Regenerate the module in full from `records` (manual edits are lost)."""

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ArtifactWriteFailure(self.path.parent, str(exc)) from exc
        _write(self.path, render_seeder(records))
        logger.info("Rebuilt %s with %d entr(ies)", self.path, len(records))
        return len(records)

    def entry_count(self) -> int | None:
        """Entries currently in the USERS region; None if missing or unparseable."""

        if not self.path.exists():
            return None
        match = USERS_REGION_RE.search(self.path.read_text(encoding="utf-8"))
        if match is None:
            return None
        return count_entries(match.group("body"))


class OrchestratorFile:
    """The application's top-level seeder (`def run(connection): ...`)."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def seeder_reference(self, seeder_path: Path) -> str:
        """`seeder_path` as `run_sibling_seeder` resolves it from this file's directory."""

        target = seeder_path.resolve()
        try:
            relative = os.path.relpath(target, self.path.resolve().parent)
        except ValueError:
            # Different drives on Windows.
            return target.as_posix()
        return Path(relative).as_posix()

    def markers(self, seeder_path: Path) -> tuple[str, str]:
        return (
            f'run_sibling_seeder(__file__, "{self.seeder_reference(seeder_path)}"',
            f"import {seeder_path.stem}",
        )

    def is_registered(self, seeder_path: Path) -> bool:
        text = self.path.read_text(encoding="utf-8")
        return any(marker in text for marker in self.markers(seeder_path))

    def register(self, seeder_path: Path) -> RegistrationResult:
        """Insert one call to the seeder at `seeder_path` at the top of `run`."""

        if not self.path.exists():
            logger.warning("%s not found, skipping seeder registration", self.path)
            return RegistrationResult.MISSING

        if self.is_registered(seeder_path):
            return RegistrationResult.ALREADY_REGISTERED

        text = self.path.read_text(encoding="utf-8")
        entry_point = _ENTRY_POINT_RE.search(text)
        if entry_point is None:
            logger.warning("%s has no `def run(...)`, skipping seeder registration", self.path)
            return RegistrationResult.ENTRY_POINT_NOT_FOUND

        insert_at = entry_point.end()
        body_indent = entry_point.group("indent") + "    "
        docstring = _DOCSTRING_RE.match(text, insert_at)
        if docstring is not None:
            body_indent = docstring.group("indent")
            insert_at = docstring.end()
        else:
            next_line = re.match(r"([ \t]+)\S", text[insert_at:])
            if next_line is not None:
                body_indent = next_line.group(1)

        connection = _first_param(entry_point.group("params")) or "connection"
        call = (
            f"{body_indent}from seedvault.core.services.seeding import run_sibling_seeder\n"
            f'{body_indent}run_sibling_seeder(__file__, "{self.seeder_reference(seeder_path)}", {connection})\n'
        )
        _write(self.path, text[:insert_at] + call + text[insert_at:])
        logger.info("Registered %s in %s", seeder_path, self.path)
        return RegistrationResult.REGISTERED


def _first_param(params: str) -> str | None:
    for raw in params.split(","):
        name = raw.split(":", 1)[0].split("=", 1)[0].strip().lstrip("*")
        if name and name not in ("self", "cls", "/"):
            return name
    return None
