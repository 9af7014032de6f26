from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="AUTOREF_EVAL_", env_file=".env", env_file_encoding="utf-8")

    referee_multicast: str = "224.5.23.1"
    vision_multicast: str = "224.5.23.2"
    vision_port: int = 10006
    refbox_port: int = 10003

    # Microseconds. An autoref call must not anticipate the human STOP, and the
    # human gets up to auto_to_human_delay_us to confirm an autoref call.
    human_to_auto_delay_us: int = Field(default=0, ge=0)
    auto_to_human_delay_us: int = Field(default=2_000_000, ge=0)
    flush_trailing_human_events: bool = True

    correction_suffix: str = "eval"
    max_datagram_size: int = Field(default=65536, gt=0)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


settings = Settings()
