from dataclasses import dataclass
from typing import List, Optional, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_name: str = "FlowBot"
    debug: bool = False

    # Telegram
    telegram_bot_token: str = ""
    admin_user_ids: List[int] = Field(default_factory=list)

    # Gating
    command_cooldown_seconds: float = 60.0  # 0 = без кулдауна
    max_stack_depth: int = 8

    # Control tokens (case-insensitive)
    help_token: str = "help"
    stop_token: str = "stop"
    stop_all_token: str = "cancel"
    done_token: str = "done"
    confirm_yes_tokens: List[str] = Field(default_factory=lambda: ["yes", "y"])
    confirm_no_tokens: List[str] = Field(default_factory=lambda: ["no", "n"])

    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"
    log_to_files: bool = False

    # Programmatic command executed once after startup
    startup_command: Optional[str] = None
    startup_chat_id: Optional[int] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


@dataclass(frozen=True)
class ControlTokens:
    """Reserved words recognized mid-flow"""
    help: str = "help"
    stop: str = "stop"
    stop_all: str = "cancel"
    done: str = "done"
    yes: Tuple[str, ...] = ("yes", "y")
    no: Tuple[str, ...] = ("no", "n")

    @classmethod
    def from_settings(cls, settings: Settings) -> "ControlTokens":
        return cls(
            help=settings.help_token.lower(),
            stop=settings.stop_token.lower(),
            stop_all=settings.stop_all_token.lower(),
            done=settings.done_token.lower(),
            yes=tuple(token.lower() for token in settings.confirm_yes_tokens),
            no=tuple(token.lower() for token in settings.confirm_no_tokens),
        )


settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance"""
    return settings
