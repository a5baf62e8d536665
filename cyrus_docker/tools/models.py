"""
Tool configuration models
"""

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field


class ToolConfig(BaseModel):
    """
    Raw contents of tools.yml

    Example:
        presets: [python, go]
        apt: [jq]
        commands:
          - echo done
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    presets: list[str] = Field(default_factory=list)
    apt: list[str] = Field(default_factory=list)
    npm: list[str] = Field(default_factory=list)
    pip: list[str] = Field(default_factory=list)
    cargo: list[str] = Field(default_factory=list)
    commands: list[str] = Field(default_factory=list)
    custom_dockerfile: str | None = Field(default=None, alias="customDockerfile")

    def to_yaml_dict(self) -> dict:
        """Only the fields that were set, with the on-disk key names."""
        return self.model_dump(by_alias=True, exclude_defaults=True)


@dataclass
class ResolvedToolConfig:
    """Tool configuration with all presets expanded"""

    apt: list[str] = field(default_factory=list)
    npm: list[str] = field(default_factory=list)
    pip: list[str] = field(default_factory=list)
    cargo: list[str] = field(default_factory=list)
    commands: list[str] = field(default_factory=list)
    custom_dockerfile: str | None = None
