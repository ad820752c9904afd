"""CLI commands for clario."""

import asyncio
import json

import typer
from rich.console import Console
from rich.table import Table

from clario import __brand__, __logo__, __version__

app = typer.Typer(
    name="clario",
    help=f"{__logo__} {__brand__} - WhatsApp task and contacts assistant",
    no_args_is_help=True,
)

console = Console()

DEFAULT_USER = "cli"


def _cli_fail(cause: str, fix: str | None = None, *, exit_code: int = 1) -> None:
    """Print a consistent CLI error block and exit."""
    console.print(f"[red]{cause}[/red]")
    if fix:
        console.print(f"[dim]Fix: {fix}[/dim]")
    raise typer.Exit(exit_code)


def _assistant():
    from clario.agent.api import Assistant
    from clario.config.loader import load_config

    return Assistant(load_config())


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} {__brand__} v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(None, "--version", "-v", callback=version_callback, is_eager=True),
):
    """clario - WhatsApp task and contacts assistant."""
    pass


@app.command("version")
def version_command():
    """Show version."""
    console.print(f"{__logo__} {__brand__} v{__version__}")


# ============================================================================
# Conversation
# ============================================================================


@app.command()
def chat(
    message: str = typer.Option(None, "--message", "-m", help="Message to send to the assistant"),
    user_id: str = typer.Option(DEFAULT_USER, "--user", "-u", help="User ID to chat as"),
    phone: str = typer.Option(None, "--phone", "-p", help="Resolve the user from a WhatsApp number"),
):
    """Talk to the assistant directly."""
    from clario.channels.whatsapp import WhatsAppInbound

    assistant = _assistant()
    inbound = WhatsAppInbound(assistant)

    async def respond(text: str) -> str:
        if phone:
            return await inbound.handle_text(phone, text)
        assistant.profiles.ensure_default(user_id)
        return await assistant.ask(text, user_id=user_id)

    if message:
        # Single message mode
        response = asyncio.run(respond(message))
        console.print(f"\n{__logo__} {response}")
        return

    # Interactive mode
    from prompt_toolkit import PromptSession
    from prompt_toolkit.history import FileHistory
    from prompt_toolkit.styles import Style

    from clario.utils.helpers import ensure_dir

    history_dir = ensure_dir(assistant.config.workspace_path / "state")
    session = PromptSession(history=FileHistory(str(history_dir / "cli_history")))
    style = Style.from_dict({"prompt": "bold blue"})

    console.print(f"{__logo__} Interactive mode (Ctrl+C to exit, /compact to summarize history)\n")

    async def run_interactive():
        while True:
            try:
                user_input = await session.prompt_async("You: ", style=style)
                if not user_input.strip():
                    continue
                response = await respond(user_input)
                console.print(f"\n{__logo__} {response}\n")
            except (KeyboardInterrupt, EOFError):
                console.print("\nGoodbye!")
                break

    asyncio.run(run_interactive())


@app.command()
def history(
    user_id: str = typer.Option(DEFAULT_USER, "--user", "-u", help="User ID"),
    limit: int = typer.Option(50, "--limit", "-n", help="Maximum messages to show"),
):
    """Show the user-facing conversation transcript."""
    assistant = _assistant()
    messages = assistant.transcript(user_id, limit)
    if not messages:
        console.print("[dim]No messages yet.[/dim]")
        return

    table = Table(title=f"Conversation: {user_id}")
    table.add_column("Time", style="dim")
    table.add_column("Role", style="cyan")
    table.add_column("Message")
    for msg in messages:
        table.add_row(msg.created_at[:19].replace("T", " "), msg.role.value, msg.content)
    console.print(table)


@app.command()
def compact(
    user_id: str = typer.Option(DEFAULT_USER, "--user", "-u", help="User ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Replace a user's history with one summary message."""
    if not yes and not typer.confirm(f"Compact history for '{user_id}'?"):
        raise typer.Exit(0)
    assistant = _assistant()
    result = asyncio.run(assistant.compact(user_id))
    console.print(f"[green]✓[/green] {result}")


# ============================================================================
# Tool Commands
# ============================================================================


tools_app = typer.Typer(help="Inspect and run assistant tools")
app.add_typer(tools_app, name="tools")


@tools_app.callback(invoke_without_command=True)
def tools_main(ctx: typer.Context):
    """Inspect and run assistant tools."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


@tools_app.command("list")
def tools_list():
    """List the tools the model may call."""
    assistant = _assistant()
    table = Table(title="Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Required")
    for definition in assistant.tools.get_definitions():
        required = definition["parameters"].get("required") or []
        table.add_row(definition["name"], ", ".join(required) or "-")
    console.print(table)


@tools_app.command("run")
def tools_run(
    name: str = typer.Argument(..., help="Tool name"),
    args: str = typer.Option("{}", "--args", "-a", help="JSON object of arguments"),
    user_id: str = typer.Option(DEFAULT_USER, "--user", "-u", help="User ID"),
    raw: bool = typer.Option(False, "--raw", help="Print the raw JSON result"),
):
    """Run one tool directly and show the result."""
    from clario.agent.tools.base import ToolError

    try:
        arguments = json.loads(args)
    except json.JSONDecodeError as e:
        _cli_fail(f"Invalid --args JSON: {e}", 'Pass an object, e.g. --args \'{"title": "Buy milk"}\'')
    if not isinstance(arguments, dict):
        _cli_fail("--args must be a JSON object.")

    assistant = _assistant()

    async def run() -> str:
        result = await assistant.run_tool(user_id, name, arguments)
        if raw:
            return json.dumps(result, indent=2, ensure_ascii=False)
        persona = assistant.profiles.system_prompt(user_id)
        return await assistant.provider.format_tool_result(persona, args, name, result)

    try:
        output = asyncio.run(run())
    except ToolError as e:
        _cli_fail(str(e), "Run `clario tools list` to see available tools and required arguments.")
    console.print(output)


# ============================================================================
# Users & Profiles
# ============================================================================


users_app = typer.Typer(help="Manage registered users")
app.add_typer(users_app, name="users")


@users_app.callback(invoke_without_command=True)
def users_main(ctx: typer.Context):
    """Manage registered users."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


@users_app.command("add")
def users_add(
    phone: str = typer.Argument(..., help="WhatsApp phone number, e.g. +14155550100"),
    user_id: str = typer.Option(None, "--id", help="Explicit user ID"),
):
    """Register a user by phone number."""
    import sqlite3

    assistant = _assistant()
    try:
        user = assistant.users.add(phone, user_id=user_id)
    except (ValueError, sqlite3.IntegrityError) as e:
        _cli_fail(f"Could not add user: {e}")
    assistant.profiles.ensure_default(user.id)
    console.print(f"[green]✓[/green] Added user {user.id} ({user.phone_number})")


@users_app.command("list")
def users_list():
    """List registered users."""
    assistant = _assistant()
    users = assistant.users.list_users()
    if not users:
        console.print("No users registered.")
        return
    table = Table(title="Users")
    table.add_column("ID", style="cyan")
    table.add_column("Phone")
    for user in users:
        table.add_row(user.id, user.phone_number)
    console.print(table)


@app.command("profile")
def profile_set(
    user_id: str = typer.Option(DEFAULT_USER, "--user", "-u", help="User ID"),
    personality: str = typer.Option(None, "--personality", help="Personality prompt"),
    name: str = typer.Option(None, "--name", help="Assistant name"),
):
    """Show or update the assistant persona for a user."""
    assistant = _assistant()
    if personality is None and name is None:
        profile = assistant.profiles.ensure_default(user_id)
    else:
        profile = assistant.profiles.update(user_id, personality_prompt=personality, assistant_name=name)
    console.print(f"[cyan]{profile.assistant_name}[/cyan]")
    console.print(profile.personality_prompt)


# ============================================================================
# Reminders
# ============================================================================


reminders_app = typer.Typer(help="Deliver task reminders")
app.add_typer(reminders_app, name="reminders")


@reminders_app.callback(invoke_without_command=True)
def reminders_main(ctx: typer.Context):
    """Deliver task reminders."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


def _reminder_job(assistant):
    from clario.channels.whatsapp import build_sender
    from clario.cron.reminders import ReminderJob, ReminderLog

    return ReminderJob(
        tasks=assistant.tasks,
        users=assistant.users,
        log=ReminderLog(assistant.db),
        sender=build_sender(assistant.config.whatsapp),
        interval_seconds=assistant.config.reminders.interval_seconds,
    )


@reminders_app.command("once")
def reminders_once():
    """Send every reminder that is due now."""
    job = _reminder_job(_assistant())
    sent = asyncio.run(job.run_once())
    console.print(f"[green]✓[/green] Sent {sent} reminder(s)")


@reminders_app.command("run")
def reminders_run():
    """Keep scanning for due reminders until interrupted."""
    assistant = _assistant()
    if not assistant.config.reminders.enabled:
        _cli_fail("Reminders are disabled.", "Set reminders.enabled=true in config.json")
    job = _reminder_job(assistant)
    console.print(f"{__logo__} Reminder job running every {job.interval_seconds:.0f}s (Ctrl+C to stop)")
    try:
        asyncio.run(job.run())
    except KeyboardInterrupt:
        job.stop()
        console.print("\nStopped.")


if __name__ == "__main__":
    app()
