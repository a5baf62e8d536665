"""
Tests for tool configuration loading, preset resolution and hashing
"""

import hashlib

import pytest

from cyrus_docker.tools.config import ToolConfigResolver
from cyrus_docker.tools.models import ResolvedToolConfig, ToolConfig
from cyrus_docker.tools.presets import TOOL_PRESETS


@pytest.fixture
def resolver(tmp_path):
    return ToolConfigResolver(tmp_path)


class TestReadConfig:
    """Test reading tools.yml"""

    def test_missing_file(self, resolver):
        """Test that no file means no config"""
        assert resolver.has_config() is False
        assert resolver.read_config() is None

    def test_read_all_fields(self, resolver):
        """Test that every documented field is read"""
        resolver.config_file.write_text(
            "presets: [python, go]\n"
            "apt: [jq]\n"
            "npm: [pnpm]\n"
            "pip: [httpie]\n"
            "cargo: [ripgrep]\n"
            "commands:\n"
            "  - echo one\n"
            "customDockerfile: /tmp/Dockerfile\n"
        )

        config = resolver.read_config()

        assert config.presets == ["python", "go"]
        assert config.apt == ["jq"]
        assert config.npm == ["pnpm"]
        assert config.pip == ["httpie"]
        assert config.cargo == ["ripgrep"]
        assert config.commands == ["echo one"]
        assert config.custom_dockerfile == "/tmp/Dockerfile"

    def test_empty_file(self, resolver):
        """Test that an empty file is an empty config"""
        resolver.config_file.write_text("")

        assert resolver.read_config() == ToolConfig()

    def test_unknown_keys_ignored(self, resolver):
        """Test that unknown top-level keys are ignored"""
        resolver.config_file.write_text("apt: [jq]\nfavourite_colour: blue\n")

        assert resolver.read_config().apt == ["jq"]

    @pytest.mark.parametrize(
        "content",
        [
            "apt: [jq\n",  # YAML syntax error
            "- just\n- a list\n",  # not a mapping
            "apt: not-a-list\n",  # schema error
        ],
    )
    def test_invalid_file_returns_none(self, resolver, content):
        """Test that broken files are ignored with a warning"""
        resolver.config_file.write_text(content)

        assert resolver.read_config() is None


class TestWriteConfig:
    """Test writing tools.yml"""

    def test_round_trip(self, resolver):
        """Test that a written config reads back the same"""
        config = ToolConfig(presets=["rust"], pip=["black"], custom_dockerfile="~/Dockerfile")

        resolver.write_config(config)

        assert resolver.read_config() == config

    def test_written_keys(self, resolver):
        """Test that only set fields are written, with on-disk names"""
        resolver.write_config(ToolConfig(presets=["go"], custom_dockerfile="/x/Dockerfile"))

        content = resolver.config_file.read_text()

        assert "presets:" in content
        assert "customDockerfile: /x/Dockerfile" in content
        assert "apt" not in content

    def test_creates_config_dir(self, tmp_path):
        """Test that the config directory is created"""
        resolver = ToolConfigResolver(tmp_path / "new")

        resolver.write_config(ToolConfig(apt=["jq"]))

        assert resolver.config_file.exists()


class TestResolveConfig:
    """Test preset expansion and deduplication"""

    def test_preset_and_user_duplicate_once(self, resolver):
        """Test that a package from a preset and the user appears once"""
        config = ToolConfig(presets=["python"], apt=["python3", "jq"])

        resolved = resolver.resolve_config(config)

        assert resolved.apt.count("python3") == 1
        assert "jq" in resolved.apt
        assert "python3-venv" in resolved.apt
        assert resolved.pip == ["pytest", "black", "ruff"]

    def test_commands_not_deduplicated(self, resolver):
        """Test that repeated commands are kept in order"""
        config = ToolConfig(commands=["echo a", "echo b", "echo a"])

        resolved = resolver.resolve_config(config)

        assert resolved.commands == ["echo a", "echo b", "echo a"]

    def test_presets_applied_in_order_before_user_entries(self, resolver):
        """Test ordering of preset and user contributions"""
        config = ToolConfig(presets=["ruby", "aws"], commands=["echo done"])

        resolved = resolver.resolve_config(config)

        assert resolved.commands[0] == "gem install bundler"
        assert resolved.commands[1:-1] == list(TOOL_PRESETS["aws"].commands)
        assert resolved.commands[-1] == "echo done"
        assert resolved.apt == ["ruby-full", "unzip"]

    def test_unknown_preset_skipped(self, resolver):
        """Test that unknown presets are skipped"""
        config = ToolConfig(presets=["cobol", "go"])

        resolved = resolver.resolve_config(config)

        assert resolved.apt == ["golang-go"]

    def test_custom_dockerfile_carried(self, resolver):
        resolved = resolver.resolve_config(ToolConfig(custom_dockerfile="/x/Dockerfile"))

        assert resolved.custom_dockerfile == "/x/Dockerfile"

    def test_load_resolved(self, resolver):
        """Test read + resolve in one step"""
        assert resolver.load_resolved() is None

        resolver.config_file.write_text("presets: [java]\n")

        assert resolver.load_resolved().apt == ["openjdk-17-jdk", "maven"]


class TestHasTools:
    """Test has_tools"""

    def test_empty(self):
        assert ToolConfigResolver.has_tools(ResolvedToolConfig()) is False

    @pytest.mark.parametrize(
        "resolved",
        [
            ResolvedToolConfig(apt=["jq"]),
            ResolvedToolConfig(npm=["pnpm"]),
            ResolvedToolConfig(pip=["black"]),
            ResolvedToolConfig(cargo=["ripgrep"]),
            ResolvedToolConfig(commands=["echo"]),
            ResolvedToolConfig(custom_dockerfile="/x/Dockerfile"),
        ],
    )
    def test_any_entry(self, resolved):
        assert ToolConfigResolver.has_tools(resolved) is True


class TestPresetCatalog:
    """Test the preset catalog"""

    def test_expected_presets(self):
        keys = [key for key, _, _ in ToolConfigResolver.available_presets()]
        assert keys == ["python", "rust", "go", "ruby", "java", "aws", "k8s", "terraform"]

    def test_every_preset_contributes_something(self):
        for preset in TOOL_PRESETS.values():
            assert preset.apt or preset.npm or preset.pip or preset.cargo or preset.commands


class TestConfigHash:
    """Test the tools.yml fingerprint"""

    def test_no_file(self, resolver):
        assert resolver.get_config_hash() is None

    def test_hash_of_raw_bytes(self, resolver):
        """Test that the hash is the truncated SHA-256 of the file bytes"""
        content = b"presets: [python]\n"
        resolver.config_file.write_bytes(content)

        config_hash = resolver.get_config_hash()

        assert config_hash == hashlib.sha256(content).hexdigest()[:16]
        assert len(config_hash) == 16

    def test_formatting_changes_hash(self, resolver):
        """Test that equivalent YAML with different text hashes differently"""
        resolver.config_file.write_text("presets: [python]\n")
        first = resolver.get_config_hash()

        resolver.config_file.write_text("presets:\n  - python\n")

        assert resolver.get_config_hash() != first


class TestGenerateDockerfile:
    """Test Dockerfile generation through the resolver"""

    def test_from_resolved_config(self, resolver):
        """Test that a resolved tools.yml renders on top of the base image"""
        resolver.write_config(ToolConfig(presets=["go"], npm=["typescript"]))

        text = ToolConfigResolver.generate_dockerfile(resolver.load_resolved(), "cyrus-ai/cyrus:base")

        assert "FROM cyrus-ai/cyrus:base" in text
        assert "golang-go" in text
        assert "RUN npm install -g typescript" in text
