"""
Settings for the license bot, check API and supervisor.

Loads configuration from environment variables (and a .env file) and provides defaults.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# 봇과 API 서버가 같은 데이터 경로와 비밀값을 쓰도록 환경 변수를 한곳에서 읽습니다.


def _int_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass
class Settings:
    """Configuration shared by both front-ends."""

    # Credentials
    discord_token: str = field(default_factory=lambda: os.getenv("DISCORD_TOKEN", ""))
    owner_id: str = field(default_factory=lambda: os.getenv("BOT_OWNER_ID", ""))
    admin_key: str = field(default_factory=lambda: os.getenv("ADMIN_KEY", ""))

    # Public base URL used in "API Endpoint" strings
    api_url: str = field(default_factory=lambda: os.getenv("API_URL", "http://localhost:3000"))

    # HTTP listener
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: _int_env("PORT", 3000))
    cors_origin: str = field(default_factory=lambda: os.getenv("ADMIN_CORS", "*"))

    # Rate limit: requests per window per client
    rate_limit_max: int = field(default_factory=lambda: _int_env("RATE_LIMIT_MAX", 100))
    rate_limit_window_sec: int = field(default_factory=lambda: _int_env("RATE_LIMIT_WINDOW_SEC", 15 * 60))

    # Discord
    guild_id: Optional[int] = None

    # Storage
    data_dir: Path = field(default_factory=lambda: Path(os.getenv("DATA_DIR", ".")))

    # Supervisor
    restart_limit: int = field(default_factory=lambda: _int_env("SUPERVISOR_RESTARTS", 0))

    log_file: Optional[str] = field(default_factory=lambda: os.getenv("LOG_FILE") or None)

    def __post_init__(self):
        """Parse optional guild id and normalize paths."""
        gid = os.getenv("GUILD_ID", "").strip()
        if self.guild_id is None and gid.isdigit():
            self.guild_id = int(gid)
        self.data_dir = Path(self.data_dir).expanduser()
        self.api_url = self.api_url.rstrip("/")

    @property
    def licenses_dir(self) -> Path:
        return self.data_dir / "licenses"

    @property
    def licenses_file(self) -> Path:
        return self.data_dir / "licenses.json"

    @property
    def approved_users_file(self) -> Path:
        return self.data_dir / "approved_users.txt"

    def endpoint_for(self, license_key: str) -> str:
        """API endpoint string shown to license owners."""
        return f"{self.api_url}/check-user-license/{license_key}/{{username}}"

    def is_owner(self, user_id) -> bool:
        return bool(self.owner_id) and str(user_id) == self.owner_id

    def validate_bot(self) -> tuple[bool, str]:
        """Validate configuration required by the Discord bot."""
        if not self.discord_token:
            return False, "DISCORD_TOKEN environment variable not set"
        if not self.owner_id:
            return False, "BOT_OWNER_ID environment variable not set"
        return True, "Configuration valid"

    def validate_server(self) -> tuple[bool, str]:
        """Validate configuration required by the HTTP API."""
        if not self.admin_key:
            return False, "ADMIN_KEY environment variable not set (admin endpoints will reject all requests)"
        return True, "Configuration valid"


def load_settings() -> Settings:
    """Load settings from .env and environment variables."""
    load_dotenv()
    return Settings()
