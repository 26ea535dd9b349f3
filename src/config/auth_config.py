from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class AuthConfig(BaseSettings):
    """Settings for verifying caller identity tokens."""

    jwt_secret: str = Field(..., alias="JWT_SECRET")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    # Seven days, matching the lifetime of tokens issued at login
    jwt_expires_in: int = Field(604800, alias="JWT_EXPIRES_IN")
    jwt_leeway: int = Field(0, alias="JWT_LEEWAY")

    @field_validator("jwt_secret")
    def validate_secret(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("JWT_SECRET must not be empty")
        return value

    @field_validator("jwt_algorithm")
    def validate_algorithm(cls, value: str) -> str:
        algorithm = value.upper()
        if algorithm not in ["HS256", "HS384", "HS512"]:
            raise ValueError("JWT_ALGORITHM must be one of HS256, HS384 or HS512")
        return algorithm

    @field_validator("jwt_expires_in")
    def validate_expires_in(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("JWT_EXPIRES_IN must be positive")
        return value

    @field_validator("jwt_leeway")
    def validate_leeway(cls, value: int) -> int:
        if value < 0:
            raise ValueError("JWT_LEEWAY must not be negative")
        return value

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)


@lru_cache()
def get_auth_config() -> AuthConfig:
    """Return a cached authentication configuration."""

    return AuthConfig()
