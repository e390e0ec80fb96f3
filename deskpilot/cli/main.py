"""CLI commands for DeskPilot."""

import asyncio
import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from deskpilot import __version__

app = typer.Typer(
    name="deskpilot",
    help="DeskPilot - goal-driven desktop automation that learns from what works",
    no_args_is_help=True,
)
memory_app = typer.Typer(
    name="memory",
    help="Inspect and reset learned memory.",
    no_args_is_help=True,
)
app.add_typer(memory_app, name="memory")

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"DeskPilot v{__version__}")
        raise typer.Exit()


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-V", callback=version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
):
    """DeskPilot - Autonomous desktop agent."""
    setup_logging(verbose)


# ============================================================================
# Factories
# ============================================================================


def create_provider(config, name: str | None = None, model: str | None = None):
    """Instantiate an LLM provider from config.

    Uses lazy imports so a missing SDK only errors when that provider is selected.
    """
    from deskpilot.providers import OpenAICompatibleProvider

    provider_name = name or config.agent.provider
    api_key = config.get_api_key(provider_name)
    api_base = config.get_api_base(provider_name)
    model = model or config.agent.model

    if provider_name == "anthropic":
        from deskpilot.providers.anthropic import AnthropicProvider

        kwargs = {"default_model": model} if model else {}
        return AnthropicProvider(api_key=api_key, api_base=api_base, **kwargs)

    extra_headers = {"X-Title": "DeskPilot"} if provider_name == "openrouter" else None
    kwargs = {"default_model": model} if model else {}
    return OpenAICompatibleProvider(
        api_key=api_key, api_base=api_base, extra_headers=extra_headers, **kwargs
    )


def create_help_channels(config, advisor):
    """Own advisor first, then the auxiliary channels that have credentials."""
    from deskpilot.memory import AdvisorHelpChannel, ResearchHelpChannel, WebSearchHelpChannel

    channels = [AdvisorHelpChannel(advisor)]

    research = config.providers.perplexity
    if research.api_key:
        channels.append(
            ResearchHelpChannel(
                create_provider(config, "perplexity", research.model or "sonar"),
                name="perplexity",
            )
        )

    if config.tools.web_search.api_key:
        channels.append(WebSearchHelpChannel(advisor, config.tools.web_search.api_key))

    return channels


def create_memory_store(config, help_channels=None):
    from deskpilot.memory import LearnedMemoryStore

    return LearnedMemoryStore(
        storage_path=config.memory.storage_path / "agent-memory.json",
        max_entries=config.memory.max_learned,
        situation_max_chars=config.memory.situation_max_chars,
        help_channels=help_channels,
    )


def create_pattern_store(config):
    from deskpilot.memory import TaskPatternStore

    return TaskPatternStore(
        storage_path=config.memory.storage_path / "task-patterns.json",
        max_patterns=config.memory.max_patterns,
    )


def _load_ready_config():
    from deskpilot.config import load_config

    config = load_config()
    if config.requires_api_key() and not config.get_api_key():
        console.print("[red]Error: No API key configured.[/red]")
        console.print("Run [cyan]deskpilot onboard[/cyan] to set up a provider.")
        raise typer.Exit(1)
    return config


def _build_desktop(config, advisor, human_like: bool):
    from deskpilot.desktop import DesktopExecutor, ScreenSensor

    vision_provider = create_provider(config, model=config.agent.vision_model or None)
    sensor = ScreenSensor(vision_provider)
    workspace = config.workspace_path
    workspace.mkdir(parents=True, exist_ok=True)
    executor = DesktopExecutor(
        advisor=advisor,
        sensor=sensor,
        workspace=workspace,
        shell_timeout=config.tools.shell_timeout,
        human_like=human_like,
    )
    return sensor, executor


def _build_task_runner(config, advisor, executor):
    from deskpilot.tasks import TaskExecutor, TaskPlanner, TaskRunner

    patterns = create_pattern_store(config)
    return TaskRunner(TaskPlanner(advisor, patterns), TaskExecutor(executor, patterns))


def _print_step(task, step):
    from deskpilot.tasks import StepStatus

    if step.status == StepStatus.RUNNING:
        console.print(f"  [cyan]>[/cyan] {step.description}")
    elif step.status == StepStatus.COMPLETED:
        console.print(f"    [green]done[/green] {step.result or ''}")
    elif step.status == StepStatus.FAILED:
        console.print(f"    [red]failed[/red] {step.error or ''}")


# ============================================================================
# Setup / Onboard
# ============================================================================


@app.command()
def onboard():
    """Interactive setup wizard for provider, model, and API keys."""
    from deskpilot.cli.providers import PROVIDERS, RESEARCH_PROVIDER
    from deskpilot.config import Config, get_config_path, load_config, save_config

    config_path = get_config_path()

    if config_path.exists():
        config = load_config()
        console.print(f"[dim]Updating existing config at {config_path}[/dim]\n")
    else:
        config = Config()

    # --- Step 1: Select provider ---
    console.print("[bold]Step 1:[/bold] Choose your LLM provider\n")
    for i, p in enumerate(PROVIDERS, 1):
        console.print(f"  [cyan]{i}[/cyan]. {p.label}")
    console.print()

    provider_idx = typer.prompt("Select provider", type=int, default=1) - 1
    if provider_idx < 0 or provider_idx >= len(PROVIDERS):
        console.print("[red]Invalid selection.[/red]")
        raise typer.Exit(1)

    provider = PROVIDERS[provider_idx]
    config.agent.provider = provider.key
    console.print(f"  [green]>[/green] {provider.label}\n")

    # --- Step 2: Select model ---
    console.print("[bold]Step 2:[/bold] Choose a model\n")
    for i, m in enumerate(provider.models, 1):
        tag = " [magenta](vision)[/magenta]" if m.vision else ""
        console.print(f"  [cyan]{i}[/cyan]. {m.label}{tag}  [dim]{m.description}[/dim]")
    console.print()

    model_idx = typer.prompt("Select model", type=int, default=1) - 1
    if model_idx < 0 or model_idx >= len(provider.models):
        console.print("[red]Invalid selection.[/red]")
        raise typer.Exit(1)

    model = provider.models[model_idx]
    config.agent.model = model.id
    if not model.vision:
        vision = next((m for m in provider.models if m.vision), None)
        config.agent.vision_model = vision.id if vision else ""
    console.print(f"  [green]>[/green] {model.label} ({model.id})\n")

    # --- Step 3: Enter credential ---
    provider_config = getattr(config.providers, provider.key)
    if provider.needs_key:
        console.print("[bold]Step 3:[/bold] Enter your API key\n")
        console.print(
            f"  Get one at: "
            f"[link={provider.key_url_hint}]{provider.key_url_hint}[/link]\n"
        )
        api_key = typer.prompt("API key", hide_input=True)
        if not api_key.strip():
            console.print("[red]API key cannot be empty.[/red]")
            raise typer.Exit(1)
        provider_config.api_key = api_key.strip()
        console.print("  [green]>[/green] Credential saved\n")
    else:
        console.print("[bold]Step 3:[/bold] Local server\n")
        api_base = typer.prompt("Server URL", default=config.get_api_base() or "")
        provider_config.api_base = api_base.strip() or None
        console.print()

    # --- Step 4: Optional help sources ---
    console.print("[bold]Step 4:[/bold] Extra help sources when stuck (optional)\n")
    research_key = typer.prompt(
        f"{RESEARCH_PROVIDER.label} API key (blank to skip)", default="", hide_input=True
    )
    if research_key.strip():
        config.providers.perplexity.api_key = research_key.strip()
        console.print(f"  [green]>[/green] {RESEARCH_PROVIDER.label} enabled")
    search_key = typer.prompt("Brave Search API key (blank to skip)", default="", hide_input=True)
    if search_key.strip():
        config.tools.web_search.api_key = search_key.strip()
        console.print("  [green]>[/green] Web search enabled")
    console.print()

    # --- Step 5: Save config ---
    save_config(config)
    console.print(f"[green]>[/green] Config saved to {config_path}")

    config.workspace_path.mkdir(parents=True, exist_ok=True)

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print(f"\nProvider: [cyan]{provider.label}[/cyan]")
    console.print(f"Model:    [cyan]{model.id}[/cyan]")
    console.print("\nTry it out: [cyan]deskpilot run \"open notepad and type hello\"[/cyan]")


# ============================================================================
# Run Command
# ============================================================================


@app.command()
def run(
    goal: str = typer.Argument(..., help="What you want done"),
    max_attempts: int = typer.Option(None, "--max-attempts", "-n", help="Give up after this many attempts"),
    no_verify: bool = typer.Option(False, "--no-verify", help="Skip checking that actions changed the screen"),
    no_help: bool = typer.Option(False, "--no-help", help="Never consult help sources when stuck"),
    fast: bool = typer.Option(False, "--fast", help="Disable human-like timing"),
):
    """Pursue a goal autonomously until it is done or attempts run out."""
    from deskpilot.advisor import ProviderAdvisor
    from deskpilot.agent import AutonomousLoop, LoopEvent, LoopEventType

    config = _load_ready_config()
    settings = config.autonomous.model_copy()
    if max_attempts is not None:
        settings.max_attempts = max(1, max_attempts)
    if no_verify:
        settings.verify_actions = False
    if no_help:
        settings.ask_for_help_when_stuck = False
    if fast:
        settings.human_like_timing = False

    advisor = ProviderAdvisor(create_provider(config))
    sensor, executor = _build_desktop(config, advisor, settings.human_like_timing)
    memory = create_memory_store(config, create_help_channels(config, advisor))

    def on_event(event: LoopEvent) -> None:
        data = event.data
        if event.type == LoopEventType.ATTEMPT:
            console.print(f"[dim]Attempt {data['count']}/{data['max']}[/dim]")
        elif event.type == LoopEventType.RECALLED:
            console.print(f"  [magenta]recalled[/magenta] {data['action']}: {data['value']}")
        elif event.type == LoopEventType.DECIDED:
            console.print(f"  [cyan]{data['action']}[/cyan] {data['value']}  [dim]{data['reasoning']}[/dim]")
        elif event.type == LoopEventType.ASKING_HELP:
            console.print(f"  [yellow]stuck {data['stuck_count']}x, asking for help[/yellow]")
        elif event.type == LoopEventType.TRYING_SUGGESTION:
            console.print(f"  [yellow]trying[/yellow] {data['action']}: {data['value']} (from {data['source']})")
        elif event.type == LoopEventType.EXECUTED and not data["success"]:
            console.print(f"  [red]failed[/red] {data['error']}")
        elif event.type == LoopEventType.OBSERVE_ERROR:
            console.print(f"  [red]could not read screen[/red] {data['error']}")

    loop = AutonomousLoop(
        advisor=advisor,
        sensor=sensor,
        executor=executor,
        memory=memory,
        config=settings,
        task_runner=_build_task_runner(config, advisor, executor),
        on_event=on_event,
    )

    console.print(f"[bold]Goal:[/bold] {goal}\n")
    try:
        result = asyncio.run(loop.start(goal))
    except KeyboardInterrupt:
        console.print("\nStopped.")
        raise typer.Exit(130)

    color = "green" if result.success else "red"
    console.print(f"\n[{color}]{result.message}[/{color}] [dim]({result.attempts} attempt(s))[/dim]")
    if not result.success:
        raise typer.Exit(1)


# ============================================================================
# Task Command
# ============================================================================


@app.command()
def task(
    instruction: str = typer.Argument(..., help="A multi-step instruction"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the plan without running it"),
):
    """Plan an instruction into steps and execute them in order."""
    from deskpilot.advisor import ProviderAdvisor
    from deskpilot.tasks import TaskExecutor, TaskPlanner, format_task

    config = _load_ready_config()
    advisor = ProviderAdvisor(create_provider(config))
    patterns = create_pattern_store(config)
    planner = TaskPlanner(advisor, patterns)

    async def run_task():
        planned = await planner.parse_task(instruction)
        console.print(format_task(planned) + "\n")
        if dry_run:
            return planned
        _, executor = _build_desktop(config, advisor, config.autonomous.human_like_timing)
        return await TaskExecutor(executor, patterns).execute_task(planned, _print_step)

    result = asyncio.run(run_task())
    if not dry_run:
        console.print("\n" + format_task(result))
        if not result.succeeded:
            raise typer.Exit(1)


# ============================================================================
# Status Command
# ============================================================================


@app.command()
def status():
    """Show status and configuration."""
    from deskpilot.cli.providers import get_provider
    from deskpilot.config import get_config_path, load_config

    config_path = get_config_path()
    config = load_config()
    workspace = config.workspace_path

    console.print("DeskPilot Status\n")

    console.print(
        f"Config:    {config_path} "
        f"{'[green]>[/green]' if config_path.exists() else '[red]x[/red]'}"
    )
    console.print(
        f"Workspace: {workspace} "
        f"{'[green]>[/green]' if workspace.exists() else '[red]x[/red]'}"
    )

    provider_info = get_provider(config.agent.provider)
    provider_label = provider_info.label if provider_info else config.agent.provider
    console.print(f"Provider:  [cyan]{provider_label}[/cyan]")
    console.print(f"Model:     {config.agent.model or '[dim]default[/dim]'}")
    console.print(f"Vision:    {config.agent.vision_model or '[dim]same as model[/dim]'}")

    if config.requires_api_key():
        has_key = bool(config.get_api_key())
        console.print(
            f"API Key:   {'[green]configured[/green]' if has_key else '[red]not set[/red]'}"
        )

    helpers = ["own advisor"]
    if config.providers.perplexity.api_key:
        helpers.append("perplexity")
    if config.tools.web_search.api_key:
        helpers.append("web search")
    console.print(f"Help:      {', '.join(helpers)}")

    stats = create_memory_store(config).get_stats()
    console.print(f"Memory:    {stats['memory_size']} learned action(s)")
    console.print(f"Patterns:  {len(create_pattern_store(config).get_all())} task pattern(s)")


# ============================================================================
# Memory Commands
# ============================================================================


@memory_app.command("stats")
def memory_stats():
    """Show learned-memory counters."""
    from deskpilot.config import load_config

    stats = create_memory_store(load_config()).get_stats()
    attempts = stats["total_attempts"]
    rate = f"{100 * stats['total_successes'] / attempts:.0f}%" if attempts else "n/a"

    console.print("Learned Memory\n")
    console.print(f"Entries:   {stats['memory_size']}")
    console.print(f"Learned:   {stats['total_learned']}")
    console.print(f"Attempts:  {attempts}")
    console.print(f"Successes: {stats['total_successes']} ({rate})")
    for source, count in sorted(stats["source_counts"].items()):
        console.print(f"  [cyan]{source}[/cyan]: {count}")


@memory_app.command("list")
def memory_list(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of entries to show"),
):
    """List learned actions, best first."""
    from deskpilot.config import load_config

    entries = create_memory_store(load_config()).get_all()
    if not entries:
        console.print("[dim]No learned actions yet.[/dim]")
        return

    entries.sort(key=lambda e: e.recall_score, reverse=True)
    table = Table(title=f"Learned actions ({len(entries)})")
    table.add_column("Goal")
    table.add_column("Action", style="cyan")
    table.add_column("Source")
    table.add_column("OK", justify="right", style="green")
    table.add_column("Fail", justify="right", style="red")
    for entry in entries[:limit]:
        table.add_row(
            entry.goal, entry.solution, entry.source, str(entry.success_count), str(entry.fail_count)
        )
    console.print(table)


@memory_app.command("clear")
def memory_clear(
    patterns: bool = typer.Option(False, "--patterns", help="Also forget task patterns"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Forget everything DeskPilot has learned."""
    from deskpilot.config import load_config

    if not yes and not typer.confirm("Forget all learned actions?"):
        raise typer.Exit()

    config = load_config()
    create_memory_store(config).clear()
    console.print("[green]>[/green] Learned memory cleared")
    if patterns:
        create_pattern_store(config).clear()
        console.print("[green]>[/green] Task patterns cleared")


if __name__ == "__main__":
    app()
