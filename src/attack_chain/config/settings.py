from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path

class Settings(BaseSettings):
    # Execution pacing
    execution_delay_ms: int = 0         # Delay between chain phases and repetitions (GM only)
    disable_delays: bool = False
    execution_limit: int = 0            # Hard cap on repetitions, 0 = no cap
    chains_enabled: bool = True

    # Roll capture
    roll_capture_timeout: float = 5.0
    repetition_roll_timeout: float = 3.0

    # Logging
    log_level: str = "INFO"
    log_file: Path | None = None
    enable_color: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ATTACK_CHAIN_",
        extra="ignore",
    )

settings = Settings()
