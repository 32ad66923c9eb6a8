from decimal import Decimal

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./renoquote.db"

    # Business identity: printed on PDFs and emails
    BUSINESS_NAME: str = "Red White Reno"
    BUSINESS_ADDRESS: str = "Stratford, ON"
    BUSINESS_PHONE: str = "(519) 555-0123"
    BUSINESS_EMAIL: str = "info@redwhitereno.com"
    BUSINESS_TAGLINE: str = "Quality Renovations in Stratford & Area"
    QUOTE_NUMBER_PREFIX: str = "RWR"

    # Quote defaults
    TAX_PERCENT: float = 13.0
    DEFAULT_CONTINGENCY_PERCENT: float = 10.0
    DEFAULT_DEPOSIT_PERCENT: float = 50.0
    DEFAULT_VALIDITY_DAYS: int = 30

    # Auth
    JWT_SECRET: str = ""  # REQUIRED in production: fail loudly if missing at auth time
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_EXPIRE_MINUTES: int = 60
    JWT_REFRESH_EXPIRE_DAYS: int = 30

    # Gemini
    GEMINI_API_KEY: str = ""
    GEMINI_CHAT_MODEL: str = "gemini-2.0-flash"
    GEMINI_IMAGE_MODEL: str = "gemini-2.0-flash-exp"
    VISUALIZATION_COUNT: int = 4
    VISUALIZATION_TIMEOUT_SECONDS: int = 90

    # Email: Resend SMTP relay; the API key doubles as the SMTP password
    SMTP_HOST: str = "smtp.resend.com"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = "resend"
    RESEND_API_KEY: str = ""
    FROM_EMAIL: str = "Red White Reno <noreply@redwhitereno.ca>"
    REPLY_TO_EMAIL: str = "quotes@redwhitereno.ca"

    # Cloudflare R2: optional, local uploads/ fallback
    CLOUDFLARE_R2_ACCOUNT_ID: str = ""
    CLOUDFLARE_R2_ACCESS_KEY_ID: str = ""
    CLOUDFLARE_R2_SECRET_ACCESS_KEY: str = ""
    CLOUDFLARE_R2_BUCKET: str = "renoquote-visualizations"

    class Config:
        env_file = ".env"


class QuoteDefaults(BaseModel):
    """Business percentages shared by the quote editor, PDF and send flow."""

    model_config = ConfigDict(frozen=True)

    tax_percent: Decimal
    default_contingency_percent: Decimal
    default_deposit_percent: Decimal
    default_validity_days: int

    @classmethod
    def from_settings(cls, s: Settings) -> "QuoteDefaults":
        return cls(
            tax_percent=Decimal(str(s.TAX_PERCENT)),
            default_contingency_percent=Decimal(str(s.DEFAULT_CONTINGENCY_PERCENT)),
            default_deposit_percent=Decimal(str(s.DEFAULT_DEPOSIT_PERCENT)),
            default_validity_days=s.DEFAULT_VALIDITY_DAYS,
        )


settings = Settings()
quote_defaults = QuoteDefaults.from_settings(settings)


def get_quote_defaults() -> QuoteDefaults:
    """FastAPI dependency: the process-wide QuoteDefaults instance."""
    return quote_defaults


def business_profile() -> dict:
    """Business identity block for PDFs and emails."""
    return {
        "name": settings.BUSINESS_NAME,
        "tagline": settings.BUSINESS_TAGLINE,
        "address": settings.BUSINESS_ADDRESS,
        "phone": settings.BUSINESS_PHONE,
        "email": settings.BUSINESS_EMAIL,
        "quote_number_prefix": settings.QUOTE_NUMBER_PREFIX,
    }
