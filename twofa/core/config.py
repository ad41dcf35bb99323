# twofa/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore")

    APP_NAME: str = "Two-Factor Service"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    JWT_SECRET: str = Field(...)
    JWT_ALGORITHM: str = "HS256"

    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_USER: str = "twofa"
    DB_PASSWORD: str = ""
    DB_NAME: str = "twofa"
    # full URL wins over the DB_* parts (e.g. sqlite+aiosqlite:// for local runs)
    DATABASE_URL: str | None = None

    # --- 2FA engine ---
    TWOFA_ISSUER: str = "Pay2X"
    QR_SERVICE_URL: str = "https://api.qrserver.com/v1/create-qr-code/"
    STORAGE_TIMEOUT_SECONDS: float = Field(5.0, gt=0)
    AUDIT_TIMEOUT_SECONDS: float = Field(2.0, gt=0)

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (f"mysql+aiomysql://{self.DB_USER}:{self.DB_PASSWORD}"
                f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}?charset=utf8mb4")


settings = Settings()  # type: ignore[call-arg]
