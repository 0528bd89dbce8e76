from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List, Optional
from pathlib import Path

class Settings(BaseSettings):
    app_name: str = Field(default="Ticketing Checkout API", alias="APP_NAME")
    env: str = Field(default="dev", alias="ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    secret_key: str = Field(default="devsecret", alias="SECRET_KEY")
    algorithm: str = Field(default="HS256", alias="ALGORITHM")
    access_token_expire_minutes: int = Field(default=60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    database_url: str | None = Field(default=None, alias="DATABASE_URL")
    cors_origins_raw: Optional[str] = Field(default=None, alias="CORS_ORIGINS", description="Comma or space separated list of allowed CORS origins")
    # Used to build Stripe success/cancel URLs
    frontend_url: str = Field(default="http://localhost:5173", alias="FRONTEND_URL")

    # Mercado Pago
    mp_access_token: Optional[str] = Field(default=None, alias="MP_ACCESS_TOKEN")
    mp_api_base_url: str = Field(default="https://api.mercadopago.com", alias="MP_API_BASE_URL")
    mp_notification_url: Optional[str] = Field(default=None, alias="MP_NOTIFICATION_URL")
    mp_timeout_seconds: float = Field(default=20.0, alias="MP_TIMEOUT_SECONDS")

    # Stripe
    stripe_secret_key: Optional[str] = Field(default=None, alias="STRIPE_SECRET_KEY")
    stripe_webhook_secret: Optional[str] = Field(default=None, alias="STRIPE_WEBHOOK_SECRET")

    default_currency: str = Field(default="brl", alias="DEFAULT_CURRENCY")
    ticket_code_length: int = Field(default=8, alias="TICKET_CODE_LENGTH")
    ticket_code_max_attempts: int = Field(default=10, alias="TICKET_CODE_MAX_ATTEMPTS")

    class Config:
        # Load env from backend/.env regardless of CWD
        env_file = str(Path(__file__).resolve().parents[2] / ".env")
        case_sensitive = False

    def _parse_list(self, v: Optional[str]) -> List[str]:
        if v is None:
            return []
        s = v.strip()
        if not s:
            return []
        if s.startswith("[") and s.endswith("]"):
            try:
                import json
                loaded = json.loads(s)
                if isinstance(loaded, list):
                    return [str(e).strip() for e in loaded if str(e).strip()]
            except ValueError:
                pass
        return [e.strip() for e in s.replace(" ", ",").split(",") if e.strip()]

    @property
    def cors_origins(self) -> List[str]:
        items = self._parse_list(self.cors_origins_raw)
        # Fallback dev defaults if none provided
        if not items:
            return [self.frontend_url]
        return items

settings = Settings()  # type: ignore
