"""Command-line entry point.

Usage:
    pr-agent --repo <url_or_path> --goal "<text>" [--json] [--log-level LEVEL]
"""

from __future__ import annotations

import json
import sys
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel

from .agent import run_agent
from .agent_modules.config import AgentConfig
from .agent_modules.data_types import ErrorResult, NeedsLLMResult, SuccessResult, VerifyFailedResult
from .agent_modules.exit_codes import EXIT_BLOCKER_INVALID_ARGS, exit_code_for, get_exit_code_description

console = Console()

USAGE = 'Usage: pr-agent --repo <url_or_path> --goal "<text>"'


def print_result_panel(message: str, status: str = "info") -> None:
    icon = {"success": "✅", "error": "❌", "warning": "⚠️", "info": "🔄"}.get(status, "ℹ️")
    border_style = {"success": "green", "error": "red", "warning": "yellow", "info": "cyan"}.get(status, "blue")
    console.print(
        Panel(
            f"{icon} {message}",
            title=f"[bold {border_style}]pr-agent[/bold {border_style}]",
            border_style=border_style,
            padding=(0, 1),
        )
    )


def render_result(result) -> None:
    """Print a human-readable summary of a RunResult."""

    if isinstance(result, SuccessResult):
        print_result_panel("Agent execution complete!", "success")
        if result.created_via_api and result.pr_url:
            console.print("[green]🎉 Pull Request created successfully![/green]")
            console.print(f"URL: {result.pr_url}")
            console.print(f"PR Number: #{result.pr_number}")
        else:
            console.print("PR Data (manual creation required):")
            console.print_json(json.dumps(result.pr_data.model_dump()))
            console.print("[yellow]To enable automatic PR creation, set GITHUB_TOKEN environment variable[/yellow]")
    elif isinstance(result, VerifyFailedResult):
        print_result_panel("Verification failed. Tests did not pass after applying fix.", "error")
        console.print("No PR will be created.")
        console.print(result.output, markup=False, highlight=False)
        if result.work_dir:
            console.print(f"Workspace preserved at: {result.work_dir}")
    elif isinstance(result, NeedsLLMResult):
        print_result_panel("No fallback patch available. LLM intervention required.", "warning")
        console.print(f"Target file: {result.plan.files[0] if result.plan.files else 'unknown'}")
        console.print("Test output:")
        console.print(result.baseline_result.output, markup=False, highlight=False)
        console.print(f"Workspace: {result.work_dir}")
    elif isinstance(result, ErrorResult):
        print_result_panel(f"Error: {result.message}", "error")
        if result.work_dir:
            console.print(f"Workspace preserved at: {result.work_dir}")


@click.command()
@click.option("--repo", "repo", default=None, help="Repository URL or local path")
@click.option("--goal", "goal", default=None, help="Free-text description of the fix")
@click.option("--json", "as_json", is_flag=True, help="Print the run result as JSON")
@click.option("--log-level", "log_level", default=None, help="Console log level (DEBUG, INFO, WARNING, ...)")
def main(repo: Optional[str], goal: Optional[str], as_json: bool = False, log_level: Optional[str] = None) -> None:
    """Clone a repository, apply a fix, verify it, and open a pull request."""

    if not repo or not repo.strip():
        console.print("[red]Error: --repo is required[/red]")
        console.print(USAGE)
        sys.exit(EXIT_BLOCKER_INVALID_ARGS)
    if not goal or not goal.strip():
        console.print("[red]Error: --goal is required[/red]")
        console.print(USAGE)
        sys.exit(EXIT_BLOCKER_INVALID_ARGS)

    config = AgentConfig.from_env()
    if log_level:
        config = config.model_copy(update={"log_level": log_level.upper()})
    elif as_json:
        # Keep stdout parseable.
        config = config.model_copy(update={"log_level": "CRITICAL"})

    result = run_agent(repo, goal, config=config)

    if as_json:
        click.echo(json.dumps(result.to_payload(), indent=2))
    else:
        render_result(result)

    cause = result.cause if isinstance(result, ErrorResult) else None
    exit_code = exit_code_for(result.status, cause)
    if exit_code and not as_json:
        console.print(f"[dim]Exit code {exit_code}: {get_exit_code_description(exit_code)}[/dim]")
    sys.exit(exit_code)


__all__ = ["main", "render_result"]
