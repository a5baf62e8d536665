"""
Dockerfile rendering for resolved tool configurations
"""

from cyrus_docker.tools.models import ResolvedToolConfig


def render_dockerfile(config: ResolvedToolConfig, base_image: str) -> str:
    """
    Render a Dockerfile that layers the configured tools on top of base_image.

    Output is deterministic: apt, pip, npm and cargo blocks in that order,
    then one RUN per custom command. Empty categories produce nothing.

    Args:
        config: Resolved tool configuration
        base_image: Image reference for the FROM line

    Returns:
        Dockerfile text
    """
    lines = [
        "# Auto-generated from ~/.cyrus-docker/tools.yml",
        "# Do not edit - regenerated on each build",
        f"FROM {base_image}",
        "",
    ]

    if config.apt:
        lines.append("# Install APT packages")
        lines.append("RUN apt-get update && apt-get install -y --no-install-recommends \\")
        for package in config.apt:
            lines.append(f"    {package} \\")
        lines.append("    && rm -rf /var/lib/apt/lists/*")
        lines.append("")

    if config.pip:
        lines.append("# Install Python packages")
        lines.append(f"RUN pip3 install --no-cache-dir {' '.join(config.pip)}")
        lines.append("")

    if config.npm:
        lines.append("# Install global npm packages")
        lines.append(f"RUN npm install -g {' '.join(config.npm)}")
        lines.append("")

    if config.cargo:
        lines.append("# Install Rust crates")
        lines.append(f"RUN cargo install {' '.join(config.cargo)}")
        lines.append("")

    if config.commands:
        lines.append("# Custom commands")
        for command in config.commands:
            lines.append(f"RUN {command}")
        lines.append("")

    return "\n".join(lines)
