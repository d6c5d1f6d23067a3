import os
from dotenv import load_dotenv
from pathlib import Path

from datetime import timedelta
from decimal import Decimal
from typing import Type

from flask import Flask

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "%(asctime)s | %(name)-20s | %(levelname)-8s | %(message)s"
DEFAULT_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LOG_FILE = None

DEFAULT_TAX_RATE = "0.10"

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")


class Config:
    """Base configuration – never use directly."""
    SECRET_KEY: str | None = os.getenv("APP_SECRET", "")

    JWT_SECRET: str = os.getenv("JWT_SECRET", "")
    JWT_ISSUER: str = os.getenv("JWT_ISSUER", "shopapi")
    JWT_AUDIENCE: str = os.getenv("JWT_AUDIENCE", "shopapi-clients")
    JWT_ALGORITHM = "HS256"
    ACCESS_TOKEN_LIFETIME = timedelta(hours=1)
    REFRESH_TOKEN_LIFETIME = timedelta(days=7)

    TAX_RATE = Decimal(os.getenv("TAX_RATE", DEFAULT_TAX_RATE))

    LOG_LEVEL = os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL)
    LOG_FORMAT = os.getenv("LOG_FORMAT", DEFAULT_LOG_FORMAT)
    LOG_DATEFMT = os.getenv("LOG_DATEFMT", DEFAULT_LOG_DATEFMT)
    LOG_FILE = os.getenv("LOG_FILE", DEFAULT_LOG_FILE)

    DATABASE_URI = os.getenv(
        "DATABASE_URL", f"sqlite:///{os.path.join(os.getcwd(), 'instance', 'database.db')}"
    )

    @staticmethod
    def init_app(app: Flask) -> None:
        pass


class DevelopmentConfig(Config):
    DEBUG = True
    HOST = "0.0.0.0"
    PORT = 5000

    @staticmethod
    def init_app(app: Flask) -> None:
        print("→ Development mode active")
        if len(app.config.get("JWT_SECRET") or "") < 32:
            print(
                "\033[93mWARNING: JWT_SECRET is weak or missing. "
                "Generate one with: python -c 'import secrets; print(secrets.token_hex(32))'\033[0m"
            )
            app.config["JWT_SECRET"] = app.config.get("JWT_SECRET") or "development-only-jwt-secret-change-me"


class ProductionConfig(Config):
    HOST = "0.0.0.0"
    PORT = int(os.getenv("PORT", 5000))

    @staticmethod
    def init_app(app: Flask) -> None:
        # Fail fast if the signing secret is garbage
        secret = app.config.get("JWT_SECRET") or ""
        if len(secret) < 32:
            raise ValueError(
                "JWT_SECRET must be a strong 32+ byte value in production. "
                "Set it in .env or environment variables."
            )


class TestingConfig(Config):
    TESTING = True
    HOST = "127.0.0.1"
    PORT = 5000
    JWT_SECRET = "testing-jwt-secret-0123456789abcdef"
    LOG_LEVEL = "WARNING"
    DATABASE_URI = f"sqlite:///{os.path.join(os.getcwd(), 'instance', 'test.db')}"


config_by_name: dict[str, Type[Config]] = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
