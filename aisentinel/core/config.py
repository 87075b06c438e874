from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: Optional[str] = None
    POSTGRES_HOST: Optional[str] = None
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_DB: str = "aisentinel"

    ENV: str = "local"
    LOG_LEVEL: str = "INFO"

    SECRET_KEY: str = "CHANGE_ME"
    SESSION_COOKIE_NAME: str = "sessionToken"
    SESSION_TTL_DAYS: int = 30
    VERIFICATION_TOKEN_EXPIRE_MINUTES: int = 60
    PRODUCTION_DOMAINS: List[str] = ["aisentinel.app", "vercel.app"]

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def SQLALCHEMY_URL(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.POSTGRES_HOST:
            return (
                f"postgresql+psycopg2://"
                f"{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
                f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}"
                f"/{self.POSTGRES_DB}"
            )
        return "sqlite:///./aisentinel.db"

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"


class ClientSettings(BaseSettings):
    BASE_URL: str = "http://localhost:5000"
    PROFILE_DIR: Optional[str] = None
    MAX_SAVED_ACCOUNTS: int = 5
    REQUEST_TIMEOUT: float = 30.0
    UNAUTHORIZED_REDIRECT_DELAY: float = 0.5
    IDENTITY_STALE_SECONDS: float = 300.0
    PRODUCTION_DOMAINS: List[str] = ["aisentinel.app", "vercel.app"]
    SESSION_TTL_DAYS: int = 30

    class Config:
        env_prefix = "AISENTINEL_CLIENT_"
        env_file = ".env"
        extra = "ignore"


def is_production_host(host: Optional[str], domains: List[str]) -> bool:
    """
    True for the hosted domains and their subdomains; localhost and bare IPs
    are development hosts.
    """
    if not host:
        return False
    host = host.split(":")[0].lower()
    return any(host == d or host.endswith("." + d) for d in domains)


settings = Settings()
