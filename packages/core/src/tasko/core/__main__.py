"""CLI 入口模块 -- python -m tasko.core <command>

支持的命令：
  init-db                      初始化 SQLite 远端库
  export <task_id> [csv|json]  从 SQLite 远端库导出任务（输出到 stdout）
"""

import asyncio
import sys

from .config import get_db_path

USAGE = """用法: python -m tasko.core <command>
命令:
  init-db                      初始化 SQLite 远端库
  export <task_id> [csv|json]  导出任务到 stdout"""


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print(USAGE)
        sys.exit(1)

    command = sys.argv[1]

    if command == "init-db":
        asyncio.run(init_db())
    elif command == "export":
        if len(sys.argv) < 3:
            print(USAGE)
            sys.exit(1)
        fmt = sys.argv[3] if len(sys.argv) > 3 else "csv"
        sys.exit(asyncio.run(export(sys.argv[2], fmt)))
    else:
        print(f"未知命令: {command}")
        print("可用命令: init-db, export")
        sys.exit(1)


async def init_db() -> None:
    """创建数据库文件与表结构"""
    from tasko.sync import SqliteBackend

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")
    backend = await SqliteBackend.open(db_path)
    await backend.close()
    print("初始化完成")


async def export(task_id: str, fmt: str) -> int:
    """导出单个任务，返回进程退出码"""
    from tasko.sync import SqliteBackend, entity_from_row

    from .export import ExportFormat, export_task
    from .models import EntityType

    try:
        export_format = ExportFormat(fmt)
    except ValueError:
        print(f"不支持的格式: {fmt}（可用: csv, json）", file=sys.stderr)
        return 1

    backend = await SqliteBackend.open(get_db_path())
    try:
        rows = await backend.select("tasks", eq={"id": task_id})
        if not rows:
            print(f"任务不存在: {task_id}", file=sys.stderr)
            return 1
        task = entity_from_row(EntityType.TASK, rows[0])
        users = [
            entity_from_row(EntityType.USER, row)
            for row in await backend.select("profiles")
        ]
    finally:
        await backend.close()

    sys.stdout.write(export_task(task, users, export_format))
    return 0


if __name__ == "__main__":
    main()
