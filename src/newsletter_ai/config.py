"""Configuration helpers for the newsletter service."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    mongodb_uri: str = Field("mongodb://localhost:27017", alias="MONGODB_URI")
    mongodb_db: str = Field("newsletter_ai", alias="MONGODB_DB")

    openai_api_key: str | None = Field(None, alias="OPENAI_API_KEY")
    newsletter_model: str = Field(
        "gpt-4.1-mini", description="Model that writes the newsletter HTML."
    )
    summarizer_model: str = Field(
        "gpt-4.1-mini", description="Model that condenses article text."
    )
    max_tokens: int = Field(
        8000,
        description=(
            "Max output tokens per AI response; raise if newsletter HTML is truncating."
        ),
    )
    temperature: float = Field(0.4, description="Generation temperature.")
    min_html_length: int = Field(
        100,
        description="Generated HTML shorter than this is treated as a failed generation.",
    )

    gnews_api_key: str | None = Field(None, alias="GNEWS_API_KEY")
    gnews_base_url: str = Field("https://gnews.io/api/v4", alias="GNEWS_BASE_URL")
    gnews_max_results: int = 10
    gnews_lang: str = "en"
    gnews_country: str = "us"
    http_timeout: float = Field(15.0, description="Seconds before news API calls give up.")

    wkhtmltopdf_path: str | None = Field(
        None,
        alias="WKHTMLTOPDF_PATH",
        description="Optional explicit wkhtmltopdf binary; defaults to the one on PATH.",
    )
    pdf_page_size: str = "A4"

    smtp_host: str | None = Field(None, alias="SMTP_HOST")
    smtp_port: int = Field(587, alias="SMTP_PORT")
    smtp_username: str | None = Field(None, alias="SMTP_USERNAME")
    smtp_password: str | None = Field(None, alias="SMTP_PASSWORD")
    smtp_use_tls: bool = Field(True, alias="SMTP_USE_TLS")
    from_email: str | None = Field(None, alias="FROM_EMAIL")
    from_name: str = Field("NewsLetterAI", alias="FROM_NAME")

    session_ttl_days: int = Field(7, description="Maximum age of a bearer session.")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    @property
    def email_configured(self) -> bool:
        return bool(self.smtp_host and self.from_email)


def get_settings() -> Settings:
    """Return a fresh settings instance; call once at process start."""
    return Settings()
