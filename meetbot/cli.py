"""Command line entry point: ask one scheduling question and print the answer."""

import argparse
import asyncio
import sys

from pydantic import ValidationError
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel

from meetbot.config import Settings
from meetbot.errors import MeetbotError, StartupDataError
from meetbot.prompts import DEFAULT_QUERY
from meetbot.services.conversation import ConversationService
from meetbot.utils.logging import LogConfig, setup_logging

EXIT_RUN_FAILED = 1
EXIT_STARTUP_FAILED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="meetbot",
        description="Ask a language model a scheduling question it answers by looking up meetings.",
    )
    parser.add_argument("query", nargs="?", default=DEFAULT_QUERY, help="question to ask (default: %(default)r)")
    parser.add_argument("--provider", choices=["anthropic", "openai"], help="completion provider")
    parser.add_argument("--model", help="model identifier")
    parser.add_argument("--base-url", help="base URL of an OpenAI-compatible server")
    parser.add_argument("--meetings-file", help="CSV table with user,date,start_time,end_time columns")
    parser.add_argument("--max-rounds", type=int, help="maximum tool-calling rounds")
    parser.add_argument("--timeout", type=float, dest="round_timeout", help="seconds allowed per model call")
    parser.add_argument("--no-stream", dest="stream", action="store_false", default=None, help="disable streaming")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)
    console = Console()
    error_console = Console(stderr=True)

    try:
        settings = Settings.from_env(
            provider=args.provider,
            model=args.model,
            base_url=args.base_url,
            meetings_file=args.meetings_file,
            max_rounds=args.max_rounds,
            round_timeout=args.round_timeout,
            stream=args.stream,
        )
        setup_logging(LogConfig(level="DEBUG" if args.verbose else settings.log_level))
        service = ConversationService.from_settings(settings)
    except (StartupDataError, ValidationError, ValueError, OSError) as e:
        error_console.print(f"[red]Startup failed: {e}[/red]")
        return EXIT_STARTUP_FAILED

    console.print(Panel(args.query, title="[bold cyan]Question[/bold cyan]", border_style="cyan"))

    try:
        with console.status("Thinking..."):
            result = asyncio.run(service.process_message(args.query))
    except (MeetbotError, ValueError) as e:
        error_console.print(f"[red]{type(e).__name__}: {e}[/red]")
        return EXIT_RUN_FAILED
    except KeyboardInterrupt:
        error_console.print("[yellow]Cancelled[/yellow]")
        return EXIT_RUN_FAILED

    console.print(
        Panel(
            Markdown(result.text),
            title="[bold green]Answer[/bold green]",
            subtitle=f"{result.rounds} rounds, {result.tool_calls} tool calls",
            border_style="green",
            padding=(1, 2),
        )
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
