"""
Command-line interface for cyrus-docker
"""

import functools
import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from cyrus_docker import __version__
from cyrus_docker.core.exceptions import CyrusDockerError, PrerequisiteError
from cyrus_docker.docker.container import format_uptime
from cyrus_docker.orchestrator import AppContext, Orchestrator
from cyrus_docker.orchestrator.lifecycle import StartResult

console = Console()


def setup_logging(verbose: bool) -> None:
    """Route library logging through rich, on stderr"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=Console(stderr=True),
                show_time=False,
                show_path=verbose,
                markup=False,
            )
        ],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def handle_errors(func):
    """Turn CyrusDockerError into exit code 1 and Ctrl+C / aborted prompts into 0"""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except CyrusDockerError as e:
            console.print(f"\n[bold red]❌ {escape(str(e))}[/bold red]\n")
            sys.exit(1)
        except (KeyboardInterrupt, click.Abort):
            console.print("\n[yellow]Cancelled.[/yellow]")
            sys.exit(0)

    return wrapper


def get_orchestrator() -> Orchestrator:
    return Orchestrator(AppContext())


def print_linear_urls(tunnel_url: str) -> None:
    console.print("Configure these URLs in your Linear OAuth app ([cyan]linear.app/settings/api/applications[/cyan]):")
    console.print(f"  Callback URL: [green]{tunnel_url}/callback[/green]")
    console.print(f"  Webhook URL:  [green]{tunnel_url}/webhook[/green]")


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", is_flag=True, help="Show debug output")
def main(verbose: bool) -> None:
    """cyrus-docker - run Cyrus in Docker with an ngrok tunnel"""
    setup_logging(verbose)


@main.command()
@handle_errors
def init() -> None:
    """Interactive setup: credentials and optional container tools"""
    from cyrus_docker.wizard import prompt_credentials, prompt_presets_on_init

    context = AppContext()

    console.print("\n[bold cyan]Cyrus Docker Setup[/bold cyan]\n")

    prereqs = context.check_prerequisites()
    table = Table(title="Prerequisites", show_header=True, header_style="bold cyan")
    table.add_column("Tool", style="white")
    table.add_column("Status", style="white")
    table.add_row("Docker", "✅" if prereqs.docker else "❌")
    table.add_row("Docker Compose", "✅" if prereqs.docker_compose else "❌")
    table.add_row("ngrok", "✅" if prereqs.ngrok else "❌")
    console.print(table)
    console.print()

    if not prereqs.all_met:
        raise PrerequisiteError(prereqs.missing)

    console.print("[green]✅ All prerequisites met![/green]\n")

    if context.env_file.exists():
        if not click.confirm("Configuration file already exists. Do you want to overwrite it?", default=False):
            console.print("Keeping existing configuration.")
            return

    env_config = prompt_credentials(console)
    context.env_file.write(env_config)
    console.print(f"\n✅ Configuration saved: [green]{context.env_file.env_file}[/green]")

    tools = prompt_presets_on_init(console, context.tools)
    if tools is not None:
        console.print(f"✅ Tool presets saved: [green]{context.tools.config_file}[/green]")

    console.print(
        Panel.fit(
            "1. Start Cyrus with an ngrok tunnel:  [cyan]cyrus-docker start[/cyan]\n"
            "2. Set the Callback and Webhook URLs shown after start in your Linear OAuth app\n"
            "3. Run the Linear OAuth flow:          [cyan]cyrus-docker auth[/cyan]\n"
            "4. Add a repository:                   [cyan]cyrus-docker add-repo <url>[/cyan]",
            title="[bold green]Setup Complete![/bold green]",
            border_style="green",
        )
    )


@main.command()
@click.option("--detach", "-d", is_flag=True, help="Run in background (don't follow logs)")
@click.option("--build", "-b", "force_build", is_flag=True, help="Force rebuild of the Docker image")
@handle_errors
def start(detach: bool, force_build: bool) -> None:
    """Start the ngrok tunnel and the Cyrus container"""
    orchestrator = get_orchestrator()

    console.print("\n[bold cyan]Starting Cyrus[/bold cyan]\n")

    def on_started(result: StartResult) -> None:
        console.print()
        console.print(
            Panel.fit(
                f"Tunnel URL: [green]{result.tunnel_url}[/green]\n"
                f"Local port: [green]{orchestrator.settings.server_port}[/green]",
                title="[bold green]Cyrus Started Successfully[/bold green]",
                border_style="green",
            )
        )
        print_linear_urls(result.tunnel_url)
        console.print("\nThen run: [cyan]cyrus-docker auth[/cyan]\n")

    result = orchestrator.start(force_build=force_build, detach=detach, on_started=on_started)

    if result.already_running:
        console.print("[yellow]⚠️  Cyrus is already running.[/yellow]")
        console.print(f"Tunnel URL: [green]{result.tunnel_url}[/green]\n")


@main.command()
@handle_errors
def stop() -> None:
    """Stop the Cyrus container and the ngrok tunnel"""
    console.print("\n[bold cyan]Stopping Cyrus[/bold cyan]\n")

    result = get_orchestrator().stop()

    for warning in result.warnings:
        console.print(f"[yellow]⚠️  {escape(warning)}[/yellow]")

    if result.was_running:
        console.print("[bold green]✅ Cyrus stopped successfully[/bold green]\n")
    else:
        console.print("Cyrus was not running, cleaned up state\n")


@main.command()
@handle_errors
def restart() -> None:
    """Restart the container only (the tunnel keeps running)"""
    console.print("\n[bold cyan]Restarting Cyrus Container[/bold cyan]\n")

    tunnel_url = get_orchestrator().restart()

    console.print("[bold green]✅ Container restarted successfully[/bold green]")
    if tunnel_url:
        console.print(f"Tunnel URL: [green]{tunnel_url}[/green]\n")


@main.command()
@handle_errors
def status() -> None:
    """Show container, tunnel and image status"""
    orchestrator = get_orchestrator()
    info = orchestrator.status()

    table = Table(title="Cyrus Docker Status", show_header=True, header_style="bold cyan")
    table.add_column("Component", style="white")
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    container = info.container
    if container.running:
        details = []
        if container.uptime_seconds is not None:
            details.append(f"up {format_uptime(container.uptime_seconds)}")
        if container.container_id:
            details.append(f"id {container.container_id}")
        icon = "✅" if container.health == "healthy" else "⚠️"
        table.add_row("Container", f"{icon} Running ({container.health})", ", ".join(details))
    else:
        table.add_row("Container", "❌ Not running", "")

    if info.tunnel.is_running and info.tunnel.url:
        table.add_row("Tunnel", "✅ Active", f"{info.tunnel.url} -> localhost:{orchestrator.settings.server_port}")
    else:
        table.add_row("Tunnel", "❌ Not running", "")

    hash_details = f"tools hash {info.tools_hash}" if info.tools_hash else ""
    if info.image_exists:
        icon = "⚠️" if info.image.needs_rebuild else "✅"
        table.add_row("Image", f"{icon} {info.image.reason}", hash_details)
    else:
        table.add_row("Image", "❌ Not built", hash_details)

    console.print()
    console.print(table)
    console.print()

    if container.running and info.tunnel.is_running and info.tunnel.url:
        print_linear_urls(info.tunnel.url)
        console.print()

    if info.started_at and container.running:
        console.print(f"Started: [green]{info.started_at.astimezone():%Y-%m-%d %H:%M:%S}[/green]\n")

    if info.stale_state:
        console.print(
            "[yellow]⚠️  State file says running but container is not. "
            "Run 'cyrus-docker stop' to clean up.[/yellow]\n"
        )


@main.command()
@click.option("--follow", "-f", is_flag=True, help="Follow log output")
@click.option("--lines", "-n", type=int, default=None, help="Number of lines to show (default: 100)")
@handle_errors
def logs(follow: bool, lines: int | None) -> None:
    """Show container logs"""
    get_orchestrator().logs(follow=follow, lines=lines)


@main.command()
@handle_errors
def shell() -> None:
    """Open a bash shell in the container"""
    console.print("Opening shell in container. Type 'exit' to leave.\n")
    get_orchestrator().shell()
    console.print("\nExited container shell.")


@main.command()
@handle_errors
def auth() -> None:
    """Run the Linear OAuth flow"""
    console.print("\n[bold cyan]Linear OAuth Authentication[/bold cyan]\n")

    exit_code = get_orchestrator().auth(open_browser=click.launch)

    if exit_code != 0:
        console.print("[bold red]❌ Authentication failed.[/bold red]")
        sys.exit(exit_code)
    console.print("\n[bold green]✅ Authentication complete![/bold green]\n")


@main.command("add-repo")
@click.argument("url", required=False)
@click.argument("workspace", required=False)
@handle_errors
def add_repo(url: str | None, workspace: str | None) -> None:
    """Add a repository (cyrus self-add-repo inside the container)"""
    console.print("\n[bold cyan]Add Repository[/bold cyan]\n")

    exit_code = get_orchestrator().add_repo(url, workspace)

    if exit_code != 0:
        console.print("[bold red]❌ Failed to add repository.[/bold red]")
        sys.exit(exit_code)
    console.print("\n[bold green]✅ Repository added![/bold green]\n")


@main.command()
@handle_errors
def tools() -> None:
    """Configure extra tools for the container image"""
    from cyrus_docker.wizard import run_tools_wizard

    context = AppContext()

    console.print("\n[bold cyan]Configure Container Tools[/bold cyan]")

    config = run_tools_wizard(console, context.tools)
    if config is not None:
        console.print(f"\n✅ Saved [green]{context.tools.config_file}[/green]")
        console.print("Run [cyan]cyrus-docker start[/cyan] or [cyan]cyrus-docker build[/cyan] to rebuild with these tools")
        console.print("Edit tools.yml directly for cargo crates, custom commands or a customDockerfile\n")


@main.command()
@click.option("--force", "-f", is_flag=True, help="Rebuild without cache even if the image is up to date")
@handle_errors
def build(force: bool) -> None:
    """Build the Cyrus Docker image"""
    console.print("\n[bold cyan]Building Cyrus Docker Image[/bold cyan]\n")

    outcome = get_orchestrator().build(force=force)

    if not outcome.built:
        console.print(f"✅ {outcome.reason} - no rebuild needed")
        console.print("Use [cyan]--force[/cyan] to rebuild anyway\n")
        return

    console.print("\n[bold green]✅ Build complete[/bold green]")
    if outcome.tools_hash:
        console.print(f"Tools hash: [green]{outcome.tools_hash}[/green]")
    else:
        console.print("Built base image (no tools configured)")
    console.print("Run [cyan]cyrus-docker start[/cyan] to start the container\n")


if __name__ == "__main__":
    main()
