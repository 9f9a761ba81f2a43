from __future__ import annotations

import os
import sqlite3
import subprocess
import sys
from pathlib import Path


def _alembic(repo_root: Path, env: dict[str, str], *args: str) -> None:
    subprocess.run(
        [sys.executable, "-m", "alembic", "-c", "alembic.ini", *args],
        cwd=repo_root,
        env=env,
        check=True,
    )


def _tables(db_path: Path) -> set[str]:
    conn = sqlite3.connect(db_path)
    try:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    finally:
        conn.close()
    return {row[0] for row in rows}


def test_alembic_upgrade_and_downgrade_blueprint_schema(tmp_path: Path) -> None:
    repo_root = Path(__file__).resolve().parents[2]
    db_path = tmp_path / "migration_test.db"
    env = os.environ.copy()
    env["DATABASE_URL"] = f"sqlite:///{db_path}"

    _alembic(repo_root, env, "upgrade", "head")

    assert {"cv_blueprints", "cv_blueprint_changes", "source_documents"} <= _tables(db_path)
    conn = sqlite3.connect(db_path)
    try:
        columns = {row[1] for row in conn.execute("PRAGMA table_info(cv_blueprints)").fetchall()}
    finally:
        conn.close()
    assert {"profile_data", "source_ids_json", "blueprint_version", "data_completeness"} <= columns

    _alembic(repo_root, env, "downgrade", "base")

    assert not {"cv_blueprints", "cv_blueprint_changes", "source_documents"} & _tables(db_path)
