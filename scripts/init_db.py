#!/usr/bin/env python3
"""
Database Initialization Script
멘션 수집 DB 테이블 생성 및 샘플 계정/프로젝트 생성
"""

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
import logging
import sys
from pathlib import Path

# 프로젝트 루트를 경로에 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# 환경 변수 로드
load_dotenv()

from mentionwatch.core.config import settings
from mentionwatch.core.container import build_container
from mentionwatch.core.exceptions import MentionWatchError

logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

app = typer.Typer()
console = Console()


@app.command()
def init(
    drop_existing: bool = typer.Option(
        False,
        "--drop",
        help="기존 테이블 삭제 후 재생성"
    ),
    seed: bool = typer.Option(
        False,
        "--seed",
        help="샘플 계정/프로젝트 생성"
    ),
    email: str = typer.Option(
        "demo@mentionwatch.local",
        "--email",
        help="샘플 계정 이메일"
    ),
):
    """
    데이터베이스 초기화

    - 테이블 생성
    - (옵션) 샘플 데이터
    """
    console.print(f"\n[bold cyan]{settings.APP_NAME} - Database Initialization[/bold cyan]\n")
    console.print(f"Database: {settings.DATABASE_URL}")

    container = build_container()

    if drop_existing:
        if not typer.confirm("기존 데이터를 모두 삭제할까요?"):
            raise typer.Exit(0)
        container.db.drop_all()
        console.print("[yellow]Dropped existing tables[/yellow]")

    container.db.create_all()
    console.print("[green]Tables created[/green]")

    if seed:
        _create_sample_data(container, email)

    container.db.dispose()
    console.print(Panel.fit("[bold green]Database initialized[/bold green]"))


def _create_sample_data(container, email: str) -> None:
    """샘플 계정 + 프로젝트"""
    account = container.accounts.create(email=email, full_name="Demo User", plan="individual")
    try:
        project = container.project_service.create(
            account_id=account.id,
            name="Budget Watch",
            keywords=["budget", "tax"],
            boolean_query="budget AND NOT sports",
        )
    except MentionWatchError as e:
        console.print(f"[red]Sample project failed: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Sample Data")
    table.add_column("Type", style="cyan")
    table.add_column("ID")
    table.add_column("Name")
    table.add_row("account", account.id, account.email)
    table.add_row("project", project.id, project.name)
    console.print(table)


if __name__ == "__main__":
    app()
