"""
Tool preset catalog

Each preset is a static bundle of packages and shell commands that can be
enabled from tools.yml by name.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PresetDefinition:
    """
    What a preset installs

    Attributes:
        name: Human-readable name
        description: Shown in the selection prompt
        apt/npm/pip/cargo: Packages per installer
        commands: Extra RUN commands, in order
    """

    name: str
    description: str
    apt: tuple[str, ...] = field(default_factory=tuple)
    npm: tuple[str, ...] = field(default_factory=tuple)
    pip: tuple[str, ...] = field(default_factory=tuple)
    cargo: tuple[str, ...] = field(default_factory=tuple)
    commands: tuple[str, ...] = field(default_factory=tuple)


TOOL_PRESETS: dict[str, PresetDefinition] = {
    "python": PresetDefinition(
        name="Python",
        description="Python 3, pip, venv, pytest, black, ruff",
        apt=("python3", "python3-pip", "python3-venv"),
        pip=("pytest", "black", "ruff"),
    ),
    "rust": PresetDefinition(
        name="Rust",
        description="Rust toolchain + cargo",
        commands=(
            "curl --proto '=https' --tlsv1.2 -sSf https://sh.rustup.rs | sh -s -- -y",
        ),
    ),
    "go": PresetDefinition(
        name="Go",
        description="Go programming language",
        apt=("golang-go",),
    ),
    "ruby": PresetDefinition(
        name="Ruby",
        description="Ruby + Bundler",
        apt=("ruby-full",),
        commands=("gem install bundler",),
    ),
    "java": PresetDefinition(
        name="Java",
        description="OpenJDK 17 + Maven",
        apt=("openjdk-17-jdk", "maven"),
    ),
    "aws": PresetDefinition(
        name="AWS CLI",
        description="AWS CLI v2",
        apt=("unzip",),
        commands=(
            'curl "https://awscli.amazonaws.com/awscli-exe-linux-x86_64.zip" -o "/tmp/awscliv2.zip"',
            "unzip -q /tmp/awscliv2.zip -d /tmp",
            "/tmp/aws/install",
            "rm -rf /tmp/awscliv2.zip /tmp/aws",
        ),
    ),
    "k8s": PresetDefinition(
        name="Kubernetes",
        description="kubectl + helm",
        commands=(
            "curl -LO https://dl.k8s.io/release/$(curl -L -s https://dl.k8s.io/release/stable.txt)/bin/linux/amd64/kubectl",
            "install -o root -g root -m 0755 kubectl /usr/local/bin/kubectl",
            "rm kubectl",
            "curl https://raw.githubusercontent.com/helm/helm/main/scripts/get-helm-3 | bash",
        ),
    ),
    "terraform": PresetDefinition(
        name="Terraform",
        description="HashiCorp Terraform",
        commands=(
            "install -m 0755 -d /etc/apt/keyrings",
            "curl -fsSL https://apt.releases.hashicorp.com/gpg | gpg --dearmor -o /etc/apt/keyrings/hashicorp-archive-keyring.gpg",
            'echo "deb [signed-by=/etc/apt/keyrings/hashicorp-archive-keyring.gpg] https://apt.releases.hashicorp.com bookworm main" > /etc/apt/sources.list.d/hashicorp.list',
            "apt-get update",
            "apt-get install -y terraform",
        ),
    ),
}
