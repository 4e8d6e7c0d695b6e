"""Configuration management for the PPM checker."""

import os
from typing import Optional

import yaml
from pydantic import BaseModel, Field

UNSET_APPLICATION_ID = "PASTE_YOUR_BOTS_CLIENT_ID_HERE"


class BotConfig(BaseModel):
    """Identifiers of the bot being driven and the channel it answers in."""
    channel_id: str = Field(default="1343184699018842202", description="Channel where commands are issued")
    guild_id: str = Field(default="1334603881652555896", description="Guild owning the command channel")
    application_id: str = Field(default="1334630845574676520", description="Bot application / author id")


class TimingConfig(BaseModel):
    """Fixed delays and timeouts, all in seconds unless noted."""
    check_interval_seconds: float = Field(default=15 * 60, description="Interval between scheduled checks")
    clear_delay_seconds: float = Field(default=10, description="Delay between /clear and /ppm")
    reload_delay_seconds: float = Field(default=6 * 60, description="Delay between /stop and /start")
    check_timeout_seconds: float = Field(default=15, description="Max wait for a /ppm reply")
    verify_wait_seconds: float = Field(default=2 * 60, description="Warm-up before verifying a restart")
    start_ack_timeout_seconds: float = Field(default=10, description="Max wait for a /start acknowledgement")
    cooldown_buffer_seconds: float = Field(default=5, description="Added to a reported start cooldown")
    group_command_delay_seconds: float = Field(default=3, description="Delay between per-member stop commands")
    anti_idle_interval_seconds: float = Field(default=4 * 60, description="Typing indicator interval")
    auto_rejoin_delay_seconds: float = Field(default=60, description="Delay before rejoining after a kick")
    notification_min_interval_seconds: float = Field(default=1.5, description="Minimum gap between notifications")
    notification_rate_limit_backoff_seconds: float = Field(default=10, description="Backoff after a rate limit")
    notification_queue_max_length: int = Field(default=20, description="Pending notification backlog limit")


class CheckerConfig(BaseModel):
    """Main configuration for the checker."""

    # User settings
    notification_channel_id: str = Field(default="", description="Channel receiving alerts and verbose logs")
    helper_channel_id: str = Field(default="", description="Secondary / user-facing channel for group actions")
    send_clear_command: bool = Field(default=True, description="Send /clear before every /ppm")
    is_verbose: bool = Field(default=False, description="Echo every captured value to the notification channel")
    anti_idle_enabled: bool = Field(default=False, description="Periodically show a typing indicator")
    force_individual_stops: bool = Field(default=False, description="Never close a whole group")
    auto_rejoin_enabled: bool = Field(default=True, description="Restart the cluster after an automatic kick")
    helper_role_id: str = Field(default="", description="Role that enables group remediation")

    log_level: str = Field(default="INFO", description="Logging level")
    host_factory: Optional[str] = Field(default=None, description="module:attribute building the host bindings")

    bot: BotConfig = Field(default_factory=BotConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)

    @property
    def helper_mode(self) -> bool:
        return bool(self.helper_role_id)


def _as_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def load_config(config_path: Optional[str] = None) -> CheckerConfig:
    """Load configuration from file or environment variables."""
    if config_path is None:
        config_path = os.getenv("PPM_CHECKER_CONFIG", "config/ppm_checker.yaml")

    config_data = {}

    if os.path.exists(config_path):
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}

    env_overrides = {
        "notification_channel_id": os.getenv("PPM_NOTIFICATION_CHANNEL_ID"),
        "helper_channel_id": os.getenv("PPM_HELPER_CHANNEL_ID"),
        "is_verbose": os.getenv("PPM_VERBOSE"),
        "send_clear_command": os.getenv("PPM_SEND_CLEAR"),
        "log_level": os.getenv("LOG_LEVEL"),
    }

    for key, value in env_overrides.items():
        if value is not None:
            if key in ["is_verbose", "send_clear_command"]:
                value = _as_bool(value)
            config_data[key] = value

    return CheckerConfig(**config_data)


def get_config() -> CheckerConfig:
    """Read the configuration afresh; settings are never cached."""
    return load_config()
