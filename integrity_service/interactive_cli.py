#!/usr/bin/env python3
"""Interactive CLI for the integrity feedback service.

This allows users to:
1. Submit feedback about an institution from the terminal
2. See the integrity analysis immediately
3. Browse the institution ranking and per-institution reports
"""
import asyncio
import sys
from datetime import datetime, UTC
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich import box
from rich.prompt import Prompt

from config import config
from database import init_db, get_db_session, list_feedback, list_institution_feedback
from schemas import AnalyticsOverview, FeedbackRequest, InstitutionReport
from aggregator import InstitutionAggregator
from ingestion import FeedbackIngestionService, IngestionResult


console = Console()

RISK_STYLES = {
    "very high": "bold red",
    "high": "yellow",
    "medium": "yellow",
    "low": "green",
}


def build_result_table(outcome: IngestionResult) -> Table:
    """Table with the analysis of one submission."""
    analysis = outcome.result.analysis
    table = Table(
        title="📊 Integrity Analysis",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )

    table.add_column("Attribute", style="cyan", width=20)
    table.add_column("Value", style="green")

    table.add_row("Integrity Score", f"{outcome.integrity_score}%")
    table.add_row("Corruption", f"{analysis.corruption_score:g}")
    table.add_row("Fairness", f"{analysis.fairness_score:g}")
    table.add_row("Nepotism", f"{analysis.nepotism_score:g}")
    table.add_row("Service Quality", f"{analysis.service_quality:g}")
    table.add_row("Sentiment", analysis.sentiment)
    table.add_row("Main Issue", analysis.main_issue)
    table.add_row("Keywords", ", ".join(analysis.keywords) or "-")
    table.add_row("Processing Method", outcome.result.processing_method)

    return table


def build_overview_table(overview: AnalyticsOverview) -> Table:
    """Ranking table, best integrity first."""
    table = Table(
        title=(
            f"🏛️  {overview.total_institutions} institutions, "
            f"{overview.total_feedbacks} feedbacks, "
            f"average integrity {overview.avg_integrity}%"
        ),
        box=box.ROUNDED,
        header_style="bold magenta"
    )

    table.add_column("#", justify="right")
    table.add_column("Institution", style="cyan")
    table.add_column("Integrity", justify="right")
    table.add_column("Risk")
    table.add_column("Feedbacks", justify="right")
    table.add_column("Negative", justify="right")

    for position, institution in enumerate(overview.ranked_institutions, start=1):
        style = RISK_STYLES.get(institution.risk_level, "white")
        table.add_row(
            str(position),
            institution.name,
            f"{institution.integrity_score}%",
            f"[{style}]{institution.risk_level}[/{style}]",
            str(institution.total_feedbacks),
            f"{institution.negative_ratio}%"
        )

    return table


def build_report_panel(report: InstitutionReport) -> Panel:
    """Panel summarizing one institution's report."""
    if not report.total_feedbacks:
        return Panel(report.summary, title=report.institution, border_style="dim")

    style = RISK_STYLES.get(report.risk_level, "white")
    issues = "\n".join(
        f"  • {issue.issue}: {issue.count} ({issue.percentage}%)" for issue in report.top_issues
    )
    content = f"""
[bold]Integrity score:[/bold] {report.integrity_score}%
[bold]Risk level:[/bold] [{style}]{report.risk_level}[/{style}]
[bold]Feedbacks:[/bold] {report.total_feedbacks}
[bold]Scores:[/bold] corruption {report.scores.corruption}, fairness {report.scores.fairness}, nepotism {report.scores.nepotism}, service {report.scores.service}
[bold]Sentiment:[/bold] +{report.sentiment.positive} / ={report.sentiment.neutral} / -{report.sentiment.negative}

[bold]Top issues:[/bold]
{issues}

[dim]{report.summary}[/dim]
    """

    return Panel(
        content,
        title=f"📋 {report.institution}",
        border_style=style,
        box=box.DOUBLE,
        padding=(1, 2)
    )


class InteractiveIntegritySystem:
    """Interactive integrity feedback system."""

    def __init__(self, ingestion_service=None, aggregator=None):
        """Initialize the system."""
        self.ingestion_service = ingestion_service or FeedbackIngestionService.from_config(config)
        self.aggregator = aggregator or InstitutionAggregator()

    async def submit_feedback(self, institution_name: str, feedback_text: str) -> IngestionResult:
        """Analyze and store one submission.

        Raises:
            pydantic.ValidationError: If a required field is empty
        """
        request = FeedbackRequest(
            institution_name=institution_name,
            timestamp=datetime.now(UTC),
            text=feedback_text
        )
        async with get_db_session() as db:
            return await self.ingestion_service.ingest(db, request)

    async def load_overview(self) -> AnalyticsOverview:
        async with get_db_session() as db:
            return self.aggregator.overview(await list_feedback(db))

    async def load_report(self, institution_name: str) -> InstitutionReport:
        async with get_db_session() as db:
            feedbacks = await list_institution_feedback(db, institution_name)
        return self.aggregator.institution_report(institution_name, feedbacks)

    def display_welcome(self):
        """Display welcome message."""
        analyzer = "OpenAI" if self.ingestion_service.ai_enabled else "rule-based keywords"
        welcome = f"""
[bold cyan]Institutional Integrity Feedback[/bold cyan]
[dim]Interactive CLI Mode[/dim]

Commands:
  [green]submit[/green]    analyze and store a feedback
  [green]overview[/green]  rank all institutions
  [green]report[/green]    detailed report for one institution
  [green]quit[/green]      exit

Analyzer: {analyzer}
        """

        console.print(Panel(welcome, border_style="bold blue", box=box.DOUBLE, padding=(1, 2)))

    async def handle_submit(self):
        institution_name = Prompt.ask("Institution")
        feedback_text = Prompt.ask("Your feedback")

        if not institution_name.strip() or not feedback_text.strip():
            console.print("[red]⚠️  Institution and feedback cannot be empty[/red]")
            return

        console.print("\n[bold]Processing your feedback...[/bold]\n")
        try:
            outcome = await self.submit_feedback(institution_name, feedback_text)
        except Exception as e:
            console.print(f"\n[yellow]⚠️  Could not save feedback: {e}[/yellow]")
            return

        console.print(build_result_table(outcome))
        console.print(f"\n[dim]💾 Saved to database with ID: {outcome.feedback.id}[/dim]")
        if outcome.alert_triggered:
            console.print("[bold red]🚨 Critical feedback: alert raised[/bold red]")

    async def run_interactive(self):
        """Run the interactive CLI loop."""
        self.display_welcome()

        while True:
            console.print()
            command = Prompt.ask(
                "Command",
                choices=["submit", "overview", "report", "quit"],
                default="submit"
            )

            if command == "quit":
                console.print("\n[cyan]Goodbye![/cyan]\n")
                break

            if command == "submit":
                await self.handle_submit()
            elif command == "overview":
                console.print(build_overview_table(await self.load_overview()))
            elif command == "report":
                institution_name = Prompt.ask("Institution")
                console.print(build_report_panel(await self.load_report(institution_name)))


async def main():
    """Main entry point."""
    console.print("[cyan]Initializing database...[/cyan]")
    await init_db()

    system = InteractiveIntegritySystem()

    try:
        await system.run_interactive()
    except KeyboardInterrupt:
        console.print("\n\n[cyan] Goodbye![/cyan]\n")
        sys.exit(0)


if __name__ == "__main__":
    asyncio.run(main())
