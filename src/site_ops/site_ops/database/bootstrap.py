"""Schema/seed helpers used by create_app() and the scripts/ entry points."""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Mapping

from werkzeug.security import generate_password_hash

from .connection import DatabaseConnection, DBConfig

logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[4]
SCHEMA_PATH = REPO_ROOT / "database" / "schema.sql"
SEED_PATH = REPO_ROOT / "database" / "seed.sql"

# (full_name, username, password, role, phone)
DEMO_USERS = (
    ("관리자", "admin", "admin123", "admin", "010-1000-0001"),
    ("김현장", "manager", "manager123", "site_manager", "010-1000-0002"),
    ("이협력", "partner", "partner123", "partner", "010-1000-0003"),
    ("박작업", "worker", "worker123", "worker", "010-1000-0004"),
)


def _strip_create_db_and_use(sql: str) -> str:
    # schema.sql may name a database; the configured one wins.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _strip_line_comments(sql: str) -> str:
    return "\n".join(line for line in sql.splitlines() if not line.lstrip().startswith("--"))


def iter_sql_statements(sql: str) -> Iterable[str]:
    """Split a script on ';' outside of quoted strings."""
    buf: list[str] = []
    quote = None
    escape = False

    for ch in sql:
        if escape:
            buf.append(ch)
            escape = False
            continue

        if ch == "\\" and quote:
            buf.append(ch)
            escape = True
            continue

        if ch in ("'", '"', "`"):
            if quote is None:
                quote = ch
            elif quote == ch:
                quote = None
            buf.append(ch)
            continue

        if ch == ";" and quote is None:
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue

        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


@contextmanager
def _connection(db_config: Mapping, *, with_database: bool = True):
    conn = DatabaseConnection(DBConfig.from_mapping(db_config)).connect(with_database=with_database)
    try:
        yield conn
    finally:
        conn.close()


def _run_script(db_config: Mapping, path: Path) -> int:
    sql = _strip_line_comments(_strip_create_db_and_use(Path(path).read_text(encoding="utf-8")))
    count = 0
    with _connection(db_config) as conn:
        cur = conn.cursor()
        for stmt in iter_sql_statements(sql):
            cur.execute(stmt)
            count += 1
        conn.commit()
    return count


def ensure_database_exists(db_config: Mapping) -> None:
    name = DBConfig.from_mapping(db_config).database
    with _connection(db_config, with_database=False) as conn:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{name}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()


def apply_schema(db_config: Mapping, *, schema_path: str | Path = SCHEMA_PATH) -> None:
    ensure_database_exists(db_config)
    count = _run_script(db_config, Path(schema_path))
    logger.info("Applied schema %s (%d statements)", schema_path, count)


def apply_seed_sql(db_config: Mapping, *, seed_path: str | Path = SEED_PATH) -> None:
    count = _run_script(db_config, Path(seed_path))
    logger.info("Applied seed %s (%d statements)", seed_path, count)


def ensure_demo_users(db_config: Mapping) -> None:
    """Create or refresh the demo accounts with real password hashes."""
    with _connection(db_config) as conn:
        cur = conn.cursor(dictionary=True)
        for full_name, username, password, role, phone in DEMO_USERS:
            password_hash = generate_password_hash(password)
            cur.execute("SELECT user_id FROM users WHERE username=%s", (username,))
            if cur.fetchone():
                cur.execute(
                    """
                    UPDATE users
                    SET full_name=%s, password_hash=%s, role=%s, phone=%s, is_active=1
                    WHERE username=%s
                    """,
                    (full_name, password_hash, role, phone, username),
                )
            else:
                cur.execute(
                    """
                    INSERT INTO users (full_name, username, password_hash, role, phone, is_active)
                    VALUES (%s, %s, %s, %s, %s, 1)
                    """,
                    (full_name, username, password_hash, role, phone),
                )
        conn.commit()
    logger.info("Demo users ready: %s", ", ".join(u[1] for u in DEMO_USERS))


def list_tables(db_config: Mapping) -> list[str]:
    with _connection(db_config) as conn:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
