from typing import Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file explicitly to ensure it works even if not in CWD
load_dotenv()


class Settings(BaseSettings):
    # Hosting panels name this variable differently, accept all of them
    discord_token: str = Field(validation_alias=AliasChoices("discord_token", "token", "bot_token"))
    mongo_uri: Optional[str] = None
    db_name: str = "INVITE_ROLES"
    owner_id: Optional[int] = None

    # Global invite code -> role id mappings, JSON encoded in the environment
    invite_role_map: dict[str, int] = Field(default_factory=dict)

    fetch_timeout_seconds: float = Field(default=10.0, gt=0)
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
try:
    settings = Settings()
except Exception as e:
    print(f"Error loading settings: {e}")
    print("Set DISCORD_TOKEN (or TOKEN / BOT_TOKEN) in the environment or in .env")
    raise
