"""SQLite 远端库初始化

PRAGMA 配置 + 四张表 DDL + 索引创建。列名与远端 PostgREST 表一致，
列表值以 JSON 文本保存。
"""

import aiosqlite

# tasks 表 DDL
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    id              TEXT PRIMARY KEY,
    title           TEXT NOT NULL,
    description     TEXT NOT NULL DEFAULT '',
    status          TEXT NOT NULL DEFAULT 'todo',
    priority        TEXT NOT NULL DEFAULT 'medium',
    assignee_id     TEXT,
    created_by_id   TEXT NOT NULL,
    project_id      TEXT NOT NULL,
    due_date        TEXT,
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL,
    tags            TEXT NOT NULL DEFAULT '[]',
    time_estimate   REAL,
    time_spent      REAL,
    time_started    TEXT,
    time_tracking   TEXT NOT NULL DEFAULT '[]',
    hourly_rate     REAL,
    cost            REAL NOT NULL DEFAULT 0
);
"""

_TASKS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_project_id ON tasks(project_id);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_assignee_id ON tasks(assignee_id);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_created_by_id ON tasks(created_by_id);",
]

# projects 表 DDL
_PROJECTS_DDL = """
CREATE TABLE IF NOT EXISTS projects (
    id           TEXT PRIMARY KEY,
    name         TEXT NOT NULL,
    description  TEXT NOT NULL DEFAULT '',
    team_id      TEXT NOT NULL,
    client_id    TEXT,
    category     TEXT,
    created_at   TEXT NOT NULL,
    budget       REAL,
    hourly_rate  REAL,
    revenue      REAL
);
"""

_PROJECTS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_projects_team_id ON projects(team_id);",
]

# clients 表 DDL
_CLIENTS_DDL = """
CREATE TABLE IF NOT EXISTS clients (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    email       TEXT NOT NULL,
    phone       TEXT,
    company     TEXT NOT NULL DEFAULT '',
    avatar      TEXT,
    status      TEXT NOT NULL DEFAULT 'active',
    created_by  TEXT,
    team_id     TEXT,
    created_at  TEXT NOT NULL
);
"""

_CLIENTS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_clients_team_id ON clients(team_id);",
]

# profiles 表 DDL
_PROFILES_DDL = """
CREATE TABLE IF NOT EXISTS profiles (
    id           TEXT PRIMARY KEY,
    name         TEXT NOT NULL,
    email        TEXT NOT NULL,
    avatar       TEXT,
    role         TEXT NOT NULL DEFAULT 'member',
    theme        TEXT NOT NULL DEFAULT 'system',
    hourly_rate  REAL,
    team_id      TEXT,
    created_at   TEXT,
    updated_at   TEXT
);
"""

# 以 JSON 文本保存的列
JSON_COLUMNS: dict[str, set[str]] = {
    "tasks": {"tags"},
}


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    for ddl in (_TASKS_DDL, _PROJECTS_DDL, _CLIENTS_DDL, _PROFILES_DDL):
        await conn.execute(ddl)

    for idx_sql in _TASKS_INDEXES + _PROJECTS_INDEXES + _CLIENTS_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def table_columns(conn: aiosqlite.Connection) -> dict[str, set[str]]:
    """读取各表的实际列名"""
    result: dict[str, set[str]] = {}
    for table in ("tasks", "projects", "clients", "profiles"):
        cursor = await conn.execute(f"PRAGMA table_info({table});")
        rows = await cursor.fetchall()
        result[table] = {row[1] for row in rows}
    return result
