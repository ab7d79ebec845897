"""
Markov Engine Configuration
"""

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MarkovConfig(BaseModel):
    """Validated generator configuration consumed by MarkovSystem.startup()"""

    seed_number: int = -1
    markov_order: int = Field(default=1, ge=1)
    response_length: int = Field(default=10, ge=0)
    memory_size: int = Field(default=4, ge=1)
    enable_forward: bool = True
    enable_backward: bool = True
    train_budget: int = Field(default=2048, ge=1)

    @model_validator(mode="after")
    def _check_directions(self) -> "MarkovConfig":
        if not (self.enable_forward or self.enable_backward):
            raise ValueError("at least one of enable_forward / enable_backward must be true")
        return self


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # ===== Service =====
    SERVICE_NAME: str = Field(default="markov-engine")
    SERVICE_VERSION: str = Field(default="1.0.0")
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)
    LOG_LEVEL: str = Field(default="info")
    DEBUG: bool = Field(default=False)

    # ===== Markov Generator =====
    MARKOV_SEED_NUMBER: int = Field(default=-1)
    MARKOV_ORDER: int = Field(default=1)
    MARKOV_RESPONSE_LENGTH: int = Field(default=10)
    MARKOV_MEMORY_SIZE: int = Field(default=4)
    MARKOV_ENABLE_FORWARD: bool = Field(default=True)
    MARKOV_ENABLE_BACKWARD: bool = Field(default=True)

    # ===== Frame Loop =====
    # window slides processed per frame tick
    MARKOV_TRAIN_BUDGET: int = Field(default=2048)
    FRAME_INTERVAL_MS: int = Field(default=16)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    def markov_config(self) -> MarkovConfig:
        """Build the validated generator config from the flat env settings"""
        return MarkovConfig(
            seed_number=self.MARKOV_SEED_NUMBER,
            markov_order=self.MARKOV_ORDER,
            response_length=self.MARKOV_RESPONSE_LENGTH,
            memory_size=self.MARKOV_MEMORY_SIZE,
            enable_forward=self.MARKOV_ENABLE_FORWARD,
            enable_backward=self.MARKOV_ENABLE_BACKWARD,
            train_budget=self.MARKOV_TRAIN_BUDGET,
        )


settings = Settings()
