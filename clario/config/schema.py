"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from clario.utils.helpers import get_data_path


def _default_workspace() -> str:
    """Default workspace under active data directory."""
    return str(get_data_path() / "workspace")


class LLMConfig(BaseModel):
    """OpenAI-compatible backend used for tool calling, formatting and compaction."""
    base_url: str = ""  # Empty disables remote calls; replies fall back to fixed text
    api_key: str = ""
    model: str = "gpt-5.1-codex-mini"  # Responses API model for the tool loop
    chat_model: str = "gpt-4.1-nano"  # Chat completions model for summaries
    timeout_seconds: float = 60.0


class AgentConfig(BaseModel):
    """Conversation loop configuration."""
    workspace: str = Field(default_factory=_default_workspace)
    max_iterations: int = 5
    history_limit: int = 50


class RemindersConfig(BaseModel):
    """Reminder delivery job configuration."""
    enabled: bool = True
    interval_seconds: float = 60.0


class WhatsAppConfig(BaseModel):
    """Outbound WhatsApp delivery."""
    outbound: str = "console"  # bridge|console
    bridge_url: str = "http://localhost:3000"
    timeout_seconds: float = 15.0


class Config(BaseSettings):
    """Root configuration for Clario."""
    llm: LLMConfig = Field(default_factory=LLMConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    reminders: RemindersConfig = Field(default_factory=RemindersConfig)
    whatsapp: WhatsAppConfig = Field(default_factory=WhatsAppConfig)

    @property
    def workspace_path(self) -> Path:
        """Get expanded workspace path."""
        return Path(self.agent.workspace).expanduser()

    @property
    def database_path(self) -> Path:
        return self.workspace_path / "clario.db"

    model_config = SettingsConfigDict(
        env_prefix="CLARIO_",
        env_nested_delimiter="__",
    )
