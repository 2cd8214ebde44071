#!/usr/bin/env python3
"""main.py

Interactive terminal client for Ask Arden.
Runs the same workflow as the HTTP API against a local chat session, using
the Rich library for display.
"""

from __future__ import annotations

# Standard Library
import sys
import uuid
from typing import Any, NoReturn

# Third-Party Libraries
from dotenv import load_dotenv
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Prompt
from rich.theme import Theme

# Local Modules
from askarden.config import Settings, configure_logging
from askarden.errors import WorkflowError
from askarden.store import MessageStore, build_store
from askarden.workflow import AskArdenWorkflow

# Load environment variables from .env file
load_dotenv()

custom_theme = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "user": "bold blue",
        "assistant": "green",
        "route": "dim cyan",
    }
)
console = Console(theme=custom_theme)


def display_banner(settings: Settings) -> None:
    """Display the welcome banner with the starter questions."""
    suggestions = "\n".join(f"- {question}" for question in settings.suggested_questions)
    console.print(
        Panel(
            Markdown(
                f"# Welcome to {settings.assistant_name}\n\n"
                "Your intelligent assistant for all your questions. "
                "Type your own question or try one of these:\n\n"
                f"{suggestions}"
            ),
            border_style="cyan",
        )
    )


def display_help() -> None:
    """Display available commands."""
    help_text = """
**Available Commands:**

- `/help` - Show this help message
- `/new` - Start a new conversation session
- `/history` - Show the messages of the current session
- `/stats` - Show session and routing configuration
- `/quit` or `/exit` - Exit
- Any other text - Ask a question
    """
    console.print(Panel(Markdown(help_text), title="Help", border_style="cyan"))


def display_history(store: MessageStore, session_id: str) -> None:
    messages = store.list_messages(session_id)
    if not messages:
        console.print("No messages in this session yet.\n", style="info")
        return
    for message in messages:
        who = "You" if message.is_user else "Arden"
        style = "user" if message.is_user else "assistant"
        stamp = message.timestamp.strftime("%H:%M")
        console.print(f"[{style}]{stamp} {who}:[/{style}] {escape(message.content)}")
    console.print()


def display_stats(
    workflow: AskArdenWorkflow, store: MessageStore, session_id: str
) -> None:
    count = len(store.list_messages(session_id))
    settings = workflow.settings
    stats_text = f"""
**Session Statistics:**

- Session: `{session_id}`
- Stored messages: {count}
- Context window: {workflow.max_history_messages} messages
- Not-found policy: `{workflow.not_found_policy}`
- Store backend: `{settings.store_backend}`
- Internal Q&A model: `{settings.model_internal_qa}`
    """
    console.print(Panel(Markdown(stats_text), title="Statistics", border_style="cyan"))


def show_event(event: dict[str, Any]) -> None:
    """Print routing events as dim one-liners."""
    console.print(
        f"  {event['agent']} -> {event['recipient']}: {event['content']}",
        style="route",
    )


def main() -> NoReturn:
    """Main entry point for the Ask Arden CLI."""
    settings = Settings()
    configure_logging(settings.model_copy(update={"log_level": "WARNING"}))
    display_banner(settings)

    try:
        workflow = AskArdenWorkflow(settings=settings)
        store = build_store(settings)
    except Exception as exc:
        console.print(f"Failed to initialize: {exc}", style="error")
        sys.exit(1)

    session_id = str(uuid.uuid4())
    console.print("Type [bold]/help[/bold] for commands, or start chatting!\n", style="info")

    while True:
        try:
            user_input = Prompt.ask("[bold blue]You[/bold blue]").strip()

            if not user_input:
                continue

            command = user_input.lower()
            if command in ["/quit", "/exit"]:
                console.print("\nGoodbye!\n", style="success")
                sys.exit(0)

            elif command == "/help":
                display_help()
                continue

            elif command == "/new":
                session_id = str(uuid.uuid4())
                console.print("Started a new conversation.\n", style="success")
                continue

            elif command == "/history":
                display_history(store, session_id)
                continue

            elif command == "/stats":
                display_stats(workflow, store, session_id)
                continue

            history = store.list_messages(session_id, limit=workflow.max_history_messages)
            console.print()
            with console.status("[bold green]Thinking...", spinner="dots"):
                result = workflow.run(user_input, history, on_event=show_event)
            store.append_exchange(session_id, user_input, result.text)

            console.print(
                Panel(
                    Markdown(result.text),
                    title=f"[bold green]{settings.assistant_name}[/bold green]",
                    subtitle=f"[dim]{result.category}[/dim]",
                    border_style="green",
                )
            )
            console.print()

        except KeyboardInterrupt:
            console.print("\n\nInterrupted. Goodbye!\n", style="warning")
            sys.exit(0)

        except WorkflowError as exc:
            console.print(f"\nUnable to get a response: {exc}\n", style="error")
            console.print("Your question was not saved; please try again.\n", style="info")


if __name__ == "__main__":
    main()
