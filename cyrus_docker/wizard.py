"""
Interactive prompts for `cyrus-docker init` and `cyrus-docker tools`
"""

import secrets

import click
from rich.console import Console
from rich.table import Table

from cyrus_docker.docker.models import EnvConfig
from cyrus_docker.tools.config import ToolConfigResolver
from cyrus_docker.tools.models import ToolConfig

AUTH_METHODS = {
    "api-key": "Anthropic API Key (from console.anthropic.com)",
    "oauth-token": "Claude Code OAuth Token (from the Claude Code CLI)",
}


def parse_package_list(text: str) -> list[str]:
    """Split a comma-separated answer into package names"""
    return [item.strip() for item in text.split(",") if item.strip()]


def _required(value: str) -> str:
    if not value.strip():
        raise click.BadParameter("A value is required")
    return value.strip()


def prompt_credentials(console: Console) -> EnvConfig:
    """
    Ask for everything .env.docker needs

    Returns:
        EnvConfig with the answers; empty optional answers stay None
    """
    console.print("\n[bold]Claude authentication[/bold]")
    for key, label in AUTH_METHODS.items():
        console.print(f"  [cyan]{key}[/cyan]  {label}")
    method = click.prompt(
        "Authentication method",
        type=click.Choice(list(AUTH_METHODS)),
        default="api-key",
    )

    config = EnvConfig(LINEAR_DIRECT_WEBHOOKS="true", CYRUS_SERVER_PORT="3456")
    if method == "api-key":
        config.ANTHROPIC_API_KEY = click.prompt(
            "Anthropic API Key", hide_input=True, value_proc=_required
        )
    else:
        config.CLAUDE_CODE_OAUTH_TOKEN = click.prompt(
            "Claude Code OAuth Token", hide_input=True, value_proc=_required
        )

    console.print("\n[bold]Linear OAuth application[/bold] (linear.app/settings/api/applications)")
    config.LINEAR_CLIENT_ID = click.prompt("Linear OAuth Client ID", value_proc=_required)
    config.LINEAR_CLIENT_SECRET = click.prompt(
        "Linear OAuth Client Secret", hide_input=True, value_proc=_required
    )
    config.LINEAR_WEBHOOK_SECRET = click.prompt(
        "Linear Webhook Secret (Enter to generate)",
        default=secrets.token_hex(32),
        show_default=False,
    )

    console.print("\n[bold]Optional[/bold] (press Enter to skip)")
    optional = {
        "NGROK_AUTHTOKEN": ("ngrok Authtoken (dashboard.ngrok.com)", True),
        "GIT_USER_NAME": ("Git user name (for commits)", False),
        "GIT_USER_EMAIL": ("Git user email (for commits)", False),
        "GITHUB_TOKEN": ("GitHub Personal Access Token (for private repos)", True),
    }
    for key, (label, hidden) in optional.items():
        answer = click.prompt(label, default="", show_default=False, hide_input=hidden)
        setattr(config, key, answer.strip() or None)

    return config


def print_presets(console: Console) -> None:
    table = Table(title="Tool Presets", show_header=True, header_style="bold cyan")
    table.add_column("Key", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Includes", style="dim")
    for key, name, description in ToolConfigResolver.available_presets():
        table.add_row(key, name, description)
    console.print()
    console.print(table)


def prompt_presets(default: list[str] | None = None) -> list[str]:
    """Ask for preset keys until every entry is a known preset"""
    known = [key for key, _, _ in ToolConfigResolver.available_presets()]
    while True:
        answer = click.prompt(
            "Presets to install (comma-separated keys, Enter for none)",
            default=", ".join(default or []),
            show_default=bool(default),
        )
        selected = parse_package_list(answer)
        unknown = [name for name in selected if name not in known]
        if not unknown:
            return list(dict.fromkeys(selected))
        click.echo(f"Unknown preset(s): {', '.join(unknown)}. Choose from: {', '.join(known)}")


def print_tool_summary(console: Console, config: ToolConfig) -> None:
    rows = [
        ("Presets", config.presets),
        ("APT packages", config.apt),
        ("npm packages", config.npm),
        ("pip packages", config.pip),
        ("cargo crates", config.cargo),
        ("Commands", config.commands),
    ]
    table = Table(title="Configuration Summary", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")
    for label, values in rows:
        if values:
            table.add_row(label, ", ".join(values))
    if config.custom_dockerfile:
        table.add_row("Custom Dockerfile", config.custom_dockerfile)
    console.print()
    console.print(table)


def run_tools_wizard(console: Console, resolver: ToolConfigResolver) -> ToolConfig | None:
    """
    Interactive tools.yml editor

    Returns:
        The saved configuration, or None if nothing was saved
    """
    existing = resolver.read_config()
    if existing is not None:
        action = click.prompt(
            "Existing tool configuration found. What would you like to do?",
            type=click.Choice(["modify", "clear", "cancel"]),
            default="modify",
        )
        if action == "cancel":
            console.print("Cancelled.")
            return None
        if action == "clear":
            existing = None

    base = existing or ToolConfig()

    print_presets(console)
    presets = prompt_presets(base.presets)
    apt = parse_package_list(
        click.prompt("Additional APT packages (comma-separated)", default=", ".join(base.apt), show_default=False)
    )
    npm = parse_package_list(
        click.prompt("Additional npm packages (comma-separated)", default=", ".join(base.npm), show_default=False)
    )
    pip = parse_package_list(
        click.prompt("Additional pip packages (comma-separated)", default=", ".join(base.pip), show_default=False)
    )

    # cargo, commands and customDockerfile are only edited in tools.yml itself
    config = base.model_copy(update={"presets": presets, "apt": apt, "npm": npm, "pip": pip})

    if not config.to_yaml_dict():
        console.print("No tools selected. Configuration not saved.")
        return None

    print_tool_summary(console, config)
    if not click.confirm("Save this configuration?", default=True):
        console.print("Configuration not saved.")
        return None

    resolver.write_config(config)
    return config


def prompt_presets_on_init(console: Console, resolver: ToolConfigResolver) -> ToolConfig | None:
    """Optional preset selection at the end of init"""
    if not click.confirm("\nWould you like to configure container development tools?", default=False):
        return None

    print_presets(console)
    presets = prompt_presets()
    if not presets:
        console.print("No tools selected. You can configure tools later with 'cyrus-docker tools'")
        return None

    config = ToolConfig(presets=presets)
    resolver.write_config(config)
    return config
