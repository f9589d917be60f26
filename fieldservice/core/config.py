# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Core configuration, all env-driven.
Single source of truth for every tunable parameter.
"""

import os


def _csv_env(name: str, default: str) -> list[str]:
    return [p.strip() for p in os.getenv(name, default).split(",") if p.strip()]


class Settings:
    """Application settings loaded from environment variables."""

    SERVICE_NAME: str = os.getenv("SERVICE_NAME", "fieldservice-web")
    SERVICE_VERSION: str = os.getenv("SERVICE_VERSION", "1.0.0")
    SERVICE_PORT: int = int(os.getenv("SERVICE_PORT", "8080"))

    # Spreadsheet-backed RPC endpoint (one URL, POST only)
    GATEWAY_URL: str = os.getenv(
        "GATEWAY_URL", "https://script.google.com/macros/s/DEPLOYMENT_ID/exec"
    )
    # 0 means no timeout: a hung call leaves the client in the syncing state
    GATEWAY_TIMEOUT: float = float(os.getenv("GATEWAY_TIMEOUT", "0"))

    POLL_INTERVAL_SECONDS: float = float(os.getenv("POLL_INTERVAL_SECONDS", "20"))

    MAX_SERVICES_PER_DAY: int = int(os.getenv("MAX_SERVICES_PER_DAY", "3"))
    MAX_GROUP_SIZE: int = int(os.getenv("MAX_GROUP_SIZE", "3"))
    MAX_CELL_SIZE: int = int(os.getenv("MAX_CELL_SIZE", "3"))
    SPOT_NAMES: list[str] = _csv_env("SPOT_NAMES", "Spot A,Spot B,Spot C,Spot D")
    GROUP_NAMES: list[str] = _csv_env("GROUP_NAMES", "Group 1,Group 2,Group 3,Group 4")

    MIN_PASSWORD_LENGTH: int = int(os.getenv("MIN_PASSWORD_LENGTH", "4"))
    DEFAULT_DEADLINE_TIME: str = os.getenv("DEFAULT_DEADLINE_TIME", "18:00")
    TIMEZONE: str = os.getenv("TIMEZONE", "Asia/Seoul")

    PREFERENCES_PATH: str = os.getenv(
        "PREFERENCES_PATH",
        os.path.join(os.path.expanduser("~"), ".fieldservice", "preferences.json"),
    )

    LEADER_ACCOUNT_ID: str = os.getenv("LEADER_ACCOUNT_ID", "leader_user_account")
    LEADER_DISPLAY_NAME: str = os.getenv("LEADER_DISPLAY_NAME", "Leader")

    CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
