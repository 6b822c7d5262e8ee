from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Target listing
    target_url: str = (
        "https://www.firstcry.com/hotwheels/5/0/113"
        "?sort=popularity&q=ard-hotwheels&ref2=q_ard_hotwheels&asid=53241"
    )

    # Cycle timing
    check_interval_seconds: int = Field(default=30, ge=5)
    cycle_timeout_seconds: float = Field(default=25.0, gt=0)

    # Browser
    navigation_timeout_ms: int = Field(default=30000, ge=1000)
    scroll_distance_px: int = Field(default=300, gt=0)
    scroll_delay_ms: int = Field(default=100, ge=0)
    max_scrolls: int = Field(default=20, ge=0)
    browser_headless: bool = True
    chromium_executable_path: str | None = None

    # Feeds
    alert_capacity: int = Field(default=50, gt=0)
    monitored_capacity: int = Field(default=20, gt=0)

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=8000, gt=0, lt=65536)

    # CORS
    cors_origins: str = "http://localhost:3000"

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]


settings = Settings()
