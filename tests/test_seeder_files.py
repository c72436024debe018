from __future__ import annotations

from pathlib import Path

import pytest

from seedvault.adapters.seeder_files import (
    USERS_REGION_RE,
    OrchestratorFile,
    SeederFile,
    render_seeder,
)
from seedvault.core.domain.models import EncryptedUserRecord, RegistrationResult
from seedvault.core.errors import ArtifactWriteFailure
from seedvault.core.services.seeding import load_seeder_module


def _record(tag: str) -> EncryptedUserRecord:
    return EncryptedUserRecord(
        name=f"gAAAAname{tag}",
        email=f"gAAAAemail{tag}",
        password=f"gAAAApassword{tag}",
        avatar=f"gAAAAavatar{tag}",
    )


def _region(path: Path) -> str:
    match = USERS_REGION_RE.search(path.read_text(encoding="utf-8"))
    assert match is not None
    return match.group("body")


def test_creates_seeder_from_template(tmp_path: Path) -> None:
    seeder = SeederFile(tmp_path / "database" / "seeders" / "user_seeder.py")

    result = seeder.append([])

    assert result.created and result.matched and result.appended == 0
    text = seeder.path.read_text(encoding="utf-8")
    assert "# seedvault-template: 1" in text
    assert "def save_from_base64(" in text and "def run(" in text
    assert seeder.entry_count() == 0
    compile(text, str(seeder.path), "exec")


def test_append_keeps_existing_entries_and_numbers_new_ones(tmp_path: Path) -> None:
    seeder = SeederFile(tmp_path / "user_seeder.py")
    seeder.append([_record("1"), _record("2")])
    before = _region(seeder.path)

    result = seeder.append([_record("3"), _record("4"), _record("5")])

    after = _region(seeder.path)
    assert after.startswith(before)
    assert result.appended == 3 and result.first_index == 3
    assert seeder.entry_count() == 5
    new_part = after[len(before):]
    assert [line.strip() for line in new_part.splitlines() if line.strip().startswith("#")] == [
        "# 3",
        "# 4",
        "# 5",
    ]
    assert new_part.index("gAAAAemail3") < new_part.index("gAAAAemail4") < new_part.index("gAAAAemail5")
    compile(seeder.path.read_text(encoding="utf-8"), "user_seeder.py", "exec")


def test_append_is_not_idempotent(tmp_path: Path) -> None:
    seeder = SeederFile(tmp_path / "user_seeder.py")

    seeder.append([_record("same")])
    seeder.append([_record("same")])

    assert seeder.entry_count() == 2
    assert seeder.path.read_text(encoding="utf-8").count('"email": "gAAAAemailsame"') == 2


def test_text_outside_region_is_untouched(tmp_path: Path) -> None:
    seeder = SeederFile(tmp_path / "user_seeder.py")
    seeder.ensure_exists()
    custom = seeder.path.read_text(encoding="utf-8") + "\n\ndef extra():\n    return {'kept': [1, 2]}\n"
    seeder.path.write_text(custom, encoding="utf-8")
    match = USERS_REGION_RE.search(custom)
    assert match is not None

    seeder.append([_record("1")])

    text = seeder.path.read_text(encoding="utf-8")
    assert text.startswith(custom[: match.end("body")])
    assert text.endswith(custom[match.end("body"):])


def test_missing_region_appends_nothing(tmp_path: Path) -> None:
    path = tmp_path / "user_seeder.py"
    path.write_text("USERS = []  # edited by hand\n", encoding="utf-8")

    result = SeederFile(path).append([_record("1")])

    assert result.matched is False and result.appended == 0
    assert path.read_text(encoding="utf-8") == "USERS = []  # edited by hand\n"
    assert SeederFile(path).entry_count() is None


def test_rebuild_matches_incremental_appends(tmp_path: Path) -> None:
    records = [_record(str(i)) for i in range(3)]
    appended = SeederFile(tmp_path / "a.py")
    appended.append(records[:1])
    appended.append(records[1:])

    rebuilt = SeederFile(tmp_path / "b.py")
    rebuilt.rebuild(records)

    assert rebuilt.path.read_text(encoding="utf-8") == appended.path.read_text(encoding="utf-8")
    assert render_seeder(records) == appended.path.read_text(encoding="utf-8")


def test_unwritable_directory_is_fatal(tmp_path: Path) -> None:
    blocker = tmp_path / "database"
    blocker.write_text("a file, not a directory", encoding="utf-8")

    with pytest.raises(ArtifactWriteFailure):
        SeederFile(blocker / "seeders" / "user_seeder.py").append([_record("1")])


ORCHESTRATOR = '''"""Application seeders."""


def run(connection) -> None:
    """Seed everything."""
    seed_roles(connection)
'''


def test_register_inserts_single_call_after_docstring(tmp_path: Path) -> None:
    path = tmp_path / "database_seeder.py"
    path.write_text(ORCHESTRATOR, encoding="utf-8")
    orchestrator = OrchestratorFile(path)

    first = orchestrator.register(tmp_path / "user_seeder.py")
    second = orchestrator.register(tmp_path / "user_seeder.py")

    text = path.read_text(encoding="utf-8")
    assert first is RegistrationResult.REGISTERED
    assert second is RegistrationResult.ALREADY_REGISTERED
    assert text.count('run_sibling_seeder(__file__, "user_seeder.py", connection)') == 1
    assert text.index('"""Seed everything."""') < text.index("run_sibling_seeder") < text.index("seed_roles")
    compile(text, str(path), "exec")


def test_register_uses_parameter_name_and_indentation(tmp_path: Path) -> None:
    path = tmp_path / "database_seeder.py"
    path.write_text("def run(conn, *, verbose=False):\n  seed_roles(conn)\n", encoding="utf-8")

    OrchestratorFile(path).register(tmp_path / "user_seeder.py")

    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[1] == "  from seedvault.core.services.seeding import run_sibling_seeder"
    assert lines[2] == '  run_sibling_seeder(__file__, "user_seeder.py", conn)'


def test_register_respects_manual_import(tmp_path: Path) -> None:
    path = tmp_path / "database_seeder.py"
    original = "from . import user_seeder\n\n\ndef run(connection):\n    user_seeder.run(connection)\n"
    path.write_text(original, encoding="utf-8")

    assert OrchestratorFile(path).register(tmp_path / "user_seeder.py") is RegistrationResult.ALREADY_REGISTERED
    assert path.read_text(encoding="utf-8") == original


def test_register_missing_orchestrator_is_skipped(tmp_path: Path) -> None:
    result = OrchestratorFile(tmp_path / "database_seeder.py").register(tmp_path / "user_seeder.py")

    assert result is RegistrationResult.MISSING
    assert not (tmp_path / "database_seeder.py").exists()


def test_register_without_entry_point(tmp_path: Path) -> None:
    path = tmp_path / "database_seeder.py"
    path.write_text("SEEDERS = []\n", encoding="utf-8")

    assert OrchestratorFile(path).register(tmp_path / "user_seeder.py") is RegistrationResult.ENTRY_POINT_NOT_FOUND


def test_register_seeder_in_another_directory(tmp_path: Path) -> None:
    seeder_path = tmp_path / "database" / "seeders" / "user_seeder.py"
    seeder_path.parent.mkdir(parents=True)
    seeder_path.write_text(
        "def run(connection, settings=None):\n    connection.append('seeded')\n", encoding="utf-8"
    )
    orchestrator_path = tmp_path / "orch" / "database_seeder.py"
    orchestrator_path.parent.mkdir()
    orchestrator_path.write_text("def run(connection):\n    pass\n", encoding="utf-8")
    orchestrator = OrchestratorFile(orchestrator_path)

    assert orchestrator.register(seeder_path) is RegistrationResult.REGISTERED
    assert orchestrator.register(seeder_path) is RegistrationResult.ALREADY_REGISTERED

    text = orchestrator_path.read_text(encoding="utf-8")
    assert 'run_sibling_seeder(__file__, "../database/seeders/user_seeder.py", connection)' in text
    calls: list[str] = []
    load_seeder_module(orchestrator_path).run(calls)
    assert calls == ["seeded"]
