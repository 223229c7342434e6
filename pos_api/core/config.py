import os
from decimal import Decimal
from typing import List
from dotenv import load_dotenv

# grab env vars from .env file
load_dotenv()


class Settings:
    # app settings
    APP_ENV: str = os.getenv("APP_ENV", "dev")
    APP_HOST: str = os.getenv("APP_HOST", "0.0.0.0")
    APP_PORT: int = int(os.getenv("APP_PORT", "8000"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    SECRET_KEY: str = os.getenv("SECRET_KEY", "change_me_very_long")
    DEVICE_TOKEN_EXPIRES_MIN: int = int(os.getenv("DEVICE_TOKEN_EXPIRES_MIN", str(60 * 24 * 365)))

    # CORS stuff
    _origins_raw: str = os.getenv("ALLOWED_ORIGINS", "*")
    ALLOWED_ORIGINS: List[str] = [o.strip() for o in _origins_raw.split(",") if o.strip()] if _origins_raw else ["*"]

    # database config with separate creds
    DB_HOST: str = os.getenv("DB_HOST", "localhost")
    DB_PORT: int = int(os.getenv("DB_PORT", "5432"))
    DB_NAME: str = os.getenv("DB_NAME", "pos")
    DB_USER: str = os.getenv("DB_USER", "pos_user")
    DB_PASSWORD: str = os.getenv("DB_PASSWORD", "")
    DB_SSL_MODE: str = os.getenv("DB_SSL_MODE", "require")
    DB_CONNECTION_TIMEOUT: int = int(os.getenv("DB_CONNECTION_TIMEOUT", "30"))
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "5"))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))

    @property
    def DATABASE_URL(self) -> str:
        """build DATABASE_URL from individual components or use explicit override"""
        # check if DATABASE_URL is explicitly set in env (for testing)
        explicit_url = os.getenv("DATABASE_URL")
        if explicit_url:
            return explicit_url

        return (
            f"postgresql+psycopg://{self.DB_USER}:{self.DB_PASSWORD}@"
            f"{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
            f"?sslmode={self.DB_SSL_MODE}&connect_timeout={self.DB_CONNECTION_TIMEOUT}"
        )

    # pricing
    # 0 disables tax; the POS shows subtotal + delivery fee only
    TAX_RATE: Decimal = Decimal(os.getenv("TAX_RATE", "0"))
    DELIVERY_FEE: Decimal = Decimal(os.getenv("DELIVERY_FEE", "0"))

    # menu endpoint cache window
    MENU_CACHE_SECONDS: int = int(os.getenv("MENU_CACHE_SECONDS", "60"))

    # paid order alerts auto-decline after this many seconds
    ORDER_ALERT_TTL_SECONDS: int = int(os.getenv("ORDER_ALERT_TTL_SECONDS", "30"))

    # mobile money via Moolre
    MOOLRE_USERNAME: str | None = os.getenv("MOOLRE_USERNAME")
    MOOLRE_PUBLIC_KEY: str | None = os.getenv("MOOLRE_PUBLIC_KEY")
    MOOLRE_ACCOUNT_NUMBER: str | None = os.getenv("MOOLRE_ACCOUNT_NUMBER")
    MOOLRE_API_URL: str = os.getenv("MOOLRE_API_URL", "https://api.moolre.com/open/transact/payment")
    PAYMENT_TIMEOUT_SECONDS: float = float(os.getenv("PAYMENT_TIMEOUT_SECONDS", "15"))
    WEBHOOK_SECRET: str = os.getenv("WEBHOOK_SECRET", "whsec_dev")


settings = Settings()
