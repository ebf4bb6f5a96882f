"""
Centralized application configuration

All settings come from environment variables (or backend/.env). External
service keys default to empty strings so the API can boot without them;
the feature that needs a missing key fails when it is called.
"""
import json
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # API Settings
    API_TITLE: str = "America Innovates API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Backend for America Innovates Magazine and Marketplace"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Public site
    SITE_URL: str = "https://americainnovates.us"
    SITE_NAME: str = "America Innovates Magazine"
    DEFAULT_SHARE_IMAGE: str = "https://americainnovates.us/lovable-uploads/826bf73b-884b-436a-a68b-f1b22cfb5eda.png"
    # Public URL of this API, used for tracking pixels and unsubscribe links
    API_PUBLIC_URL: str = "https://api.americainnovates.us"

    # Database / Supabase
    DATABASE_URL: str = ""
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    SUPABASE_JWT_SECRET: str = ""
    SUPABASE_IMAGE_BUCKET: str = "submission-images"

    # CORS - Can be string (comma-separated) or JSON array
    # Example: "http://localhost:5173,https://americainnovates.us" or '["http://localhost:5173"]'
    ALLOWED_ORIGINS: Optional[str] = "http://localhost:5173,https://americainnovates.us"

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into list"""
        if not self.ALLOWED_ORIGINS:
            return ["http://localhost:5173"]

        # Try JSON parse first (for array format)
        try:
            origins = json.loads(self.ALLOWED_ORIGINS)
            if isinstance(origins, list):
                return origins
        except (json.JSONDecodeError, ValueError):
            pass

        # Fall back to comma-separated string
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    # Security
    CSRF_SECRET: str = ""
    CSRF_MAX_AGE_SECONDS: int = 2 * 60 * 60

    # AI content generation
    AI_PROVIDER: str = "openai"
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_MODEL: str = "claude-haiku-4-5-20251001"

    # Payments
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    PAYPAL_CLIENT_ID: str = ""
    PAYPAL_CLIENT_SECRET: str = ""
    PAYPAL_MODE: str = "sandbox"
    FEATURED_STORY_PRICE_CENTS: int = 5000
    FEATURED_STORY_DAYS: int = 30

    # Email (Resend)
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = "America Innovates <admin@americainnovates.us>"
    ORDERS_EMAIL_FROM: str = "America Innovates Marketplace <orders@americainnovates.us>"
    ADMIN_NOTIFICATION_EMAIL: str = "admin@americainnovates.us"
    INVITE_EMAIL_ADDRESS: str = "admin@americainnovates.us"
    NEWSLETTER_BATCH_SIZE: int = 3
    NEWSLETTER_BATCH_DELAY_SECONDS: float = 5.0

    # Ads
    ADSENSE_PUBLISHER_ID: str = "pub-3665365079867533"

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
