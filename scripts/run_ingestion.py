#!/usr/bin/env python3
"""
Ingestion Runner
수동 수집 실행, 스케줄러 틱 1회, 커넥터 헬스 조회

Usage:
    python scripts/run_ingestion.py project <project_id> [--force]
    python scripts/run_ingestion.py tick
    python scripts/run_ingestion.py health <project_id>
"""

import typer
from rich.console import Console
from rich.table import Table
import asyncio
import logging
import sys
from pathlib import Path

# 프로젝트 루트를 경로에 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# 환경 변수 로드
load_dotenv()

from mentionwatch.core.container import build_container
from mentionwatch.core.dates import utcnow
from mentionwatch.data_pipeline.pipeline import IngestOptions

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

app = typer.Typer()
console = Console()


@app.command()
def project(
    project_id: str = typer.Argument(..., help="프로젝트 ID"),
    force: bool = typer.Option(False, "--force", help="일시정지 프로젝트도 실행"),
    auto_pause: bool = typer.Option(False, "--auto-pause", help="실행 후 일시정지"),
):
    """프로젝트 1회 수집"""
    container = build_container()
    target = container.projects.get(project_id)
    if target is None:
        console.print(f"[red]Project not found: {project_id}[/red]")
        raise typer.Exit(1)

    if not container.projects.claim(target.id, target.last_run_at, utcnow(), require_active=False):
        console.print(f"[yellow]Ingestion already in progress: {project_id}[/yellow]")
        raise typer.Exit(1)

    result = asyncio.run(
        container.orchestrator.ingest_project(
            target, IngestOptions(force=force, auto_pause=auto_pause)
        )
    )

    if result.reason:
        console.print(f"[yellow]Skipped: {result.reason}[/yellow]")
        return

    table = Table(title=f"Ingestion - {target.name}")
    table.add_column("Connector", style="cyan")
    table.add_column("State")
    table.add_column("Fetched", justify="right")
    table.add_column("Kept", justify="right")
    table.add_column("Inserted", justify="right")
    table.add_column("Error")
    for summary in result.connectors:
        state_style = "green" if summary.state.value == "ok" else "yellow"
        table.add_row(
            summary.connector_id,
            f"[{state_style}]{summary.state.value}[/{state_style}]",
            str(summary.fetched),
            str(summary.kept),
            str(summary.inserted),
            summary.error or "",
        )
    console.print(table)
    console.print(f"\n[bold]Inserted:[/bold] {result.inserted}  [bold]Status:[/bold] {result.status}")


@app.command()
def tick():
    """스케줄러 틱 1회 실행"""
    container = build_container()
    report = asyncio.run(container.scheduler.tick())

    console.print(
        f"checked={report.checked} due={report.due} "
        f"claimed={report.claimed} failed={len(report.failed)}"
    )
    for project_id, outcome in report.results.items():
        console.print(f"  {project_id}: {outcome}")
    for project_id in report.failed:
        console.print(f"  [red]{project_id}: failed[/red]")


@app.command()
def health(project_id: str = typer.Argument(..., help="프로젝트 ID")):
    """커넥터 헬스 조회"""
    container = build_container()
    records = container.health.list_for_project(project_id)
    if not records:
        console.print("[yellow]No health records[/yellow]")
        return

    table = Table(title=f"Connector Health - {project_id}")
    table.add_column("Connector", style="cyan")
    table.add_column("Status")
    table.add_column("Last Checked")
    table.add_column("Last Error")
    for record in records:
        table.add_row(
            record.connector_id,
            record.status.value,
            record.last_checked_at.isoformat() if record.last_checked_at else "",
            record.last_error or "",
        )
    console.print(table)


if __name__ == "__main__":
    app()
