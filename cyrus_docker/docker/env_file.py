"""
.env.docker file handling

The env file lives in the writable config directory. When it is written fresh
the example template from the compose project is used as the base, so its
comments and ordering survive.
"""

import logging
import re
from pathlib import Path

from cyrus_docker.docker.models import EnvConfig

logger = logging.getLogger(__name__)


class EnvFileStore:
    """
    Read and write a KEY=VALUE environment file

    Example:
        store = EnvFileStore(config_dir / ".env.docker", docker_dir / ".env.docker.example")
        store.update_value("CYRUS_BASE_URL", "https://abc.ngrok.app")
    """

    def __init__(self, env_file: Path, template_file: Path | None = None):
        self.env_file = env_file
        self.template_file = template_file

    def exists(self) -> bool:
        """Check if the env file has been created (by init)."""
        return self.env_file.exists()

    def read_raw(self) -> dict[str, str]:
        """
        Parse every KEY=VALUE line, known or not.

        Blank lines and lines starting with '#' are ignored. Values are split
        on the first '=' only.
        """
        if not self.env_file.exists():
            return {}

        values: dict[str, str] = {}
        for line in self.env_file.read_text(encoding="utf-8").splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            key, _, value = stripped.partition("=")
            if key:
                values[key] = value
        return values

    def read(self) -> EnvConfig:
        """
        Read the env file into an EnvConfig.

        Returns:
            EnvConfig (all fields None when the file does not exist)
        """
        raw = self.read_raw()
        unknown = sorted(set(raw) - set(EnvConfig.keys()))
        if unknown:
            logger.debug(f"Ignoring unknown keys in {self.env_file}: {unknown}")
        return EnvConfig.from_dict(raw)

    def _base_content(self) -> str:
        if self.template_file is not None and self.template_file.exists():
            return self.template_file.read_text(encoding="utf-8")
        return ""

    def write(self, config: EnvConfig) -> None:
        """
        Write the env file from the template plus the given values.

        An existing KEY= line in the template is replaced in place (first
        occurrence); keys the template does not mention are appended. Empty
        values are skipped.

        Args:
            config: Values to write
        """
        content = self._base_content()

        for key, value in config.to_dict().items():
            pattern = re.compile(rf"^{re.escape(key)}=.*$", re.MULTILINE)
            line = f"{key}={value}"
            if pattern.search(content):
                content = pattern.sub(lambda _match: line, content, count=1)
            else:
                content += f"\n{line}"

        self.env_file.parent.mkdir(parents=True, exist_ok=True)
        self.env_file.write_text(content, encoding="utf-8")
        # May contain API keys
        self.env_file.chmod(0o600)
        # Log var names but not values
        logger.info(f"Wrote {self.env_file} with variables: {list(config.to_dict().keys())}")

    def update_value(self, key: str, value: str) -> None:
        """
        Update a single value, keeping everything else already in the file.

        Raises:
            ValueError: If key is not a known env variable
        """
        if key not in EnvConfig.keys():
            raise ValueError(f"Unknown env variable: {key}")

        config = self.read()
        setattr(config, key, value)
        self.write(config)
