"""
Tests for Dockerfile rendering
"""

from cyrus_docker.tools.dockerfile import render_dockerfile
from cyrus_docker.tools.models import ResolvedToolConfig

BASE = "cyrus-ai/cyrus:base"


class TestRenderDockerfile:
    """Test render_dockerfile"""

    def test_empty_config_only_from(self):
        """Test that empty categories emit no RUN lines"""
        text = render_dockerfile(ResolvedToolConfig(), BASE)

        assert "FROM cyrus-ai/cyrus:base" in text
        assert "RUN" not in text

    def test_apt_block(self):
        """Test the apt install block"""
        text = render_dockerfile(ResolvedToolConfig(apt=["jq", "ripgrep"]), BASE)

        lines = text.splitlines()
        start = lines.index("RUN apt-get update && apt-get install -y --no-install-recommends \\")
        assert lines[start + 1] == "    jq \\"
        assert lines[start + 2] == "    ripgrep \\"
        assert lines[start + 3] == "    && rm -rf /var/lib/apt/lists/*"

    def test_single_invocation_per_installer(self):
        """Test pip, npm and cargo each get one RUN covering all packages"""
        config = ResolvedToolConfig(pip=["black", "ruff"], npm=["pnpm", "tsx"], cargo=["ripgrep"])

        text = render_dockerfile(config, BASE)

        assert "RUN pip3 install --no-cache-dir black ruff" in text
        assert "RUN npm install -g pnpm tsx" in text
        assert "RUN cargo install ripgrep" in text
        assert text.count("RUN ") == 3

    def test_commands_in_order(self):
        """Test that each command gets its own RUN, after the packages"""
        config = ResolvedToolConfig(apt=["jq"], commands=["echo one", "echo two", "echo one"])

        lines = render_dockerfile(config, BASE).splitlines()
        runs = [line for line in lines if line.startswith("RUN ")]

        assert runs[1:] == ["RUN echo one", "RUN echo two", "RUN echo one"]

    def test_block_order(self):
        """Test apt, pip, npm, cargo, commands ordering"""
        config = ResolvedToolConfig(
            apt=["a"], npm=["n"], pip=["p"], cargo=["c"], commands=["echo x"]
        )

        text = render_dockerfile(config, BASE)

        positions = [
            text.index("apt-get install"),
            text.index("pip3 install"),
            text.index("npm install"),
            text.index("cargo install"),
            text.index("RUN echo x"),
        ]
        assert positions == sorted(positions)

    def test_deterministic(self):
        config = ResolvedToolConfig(apt=["jq"], pip=["black"], commands=["echo"])

        assert render_dockerfile(config, BASE) == render_dockerfile(config, BASE)
