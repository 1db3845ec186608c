"""Configuration management using Pydantic Settings"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_prefix="CARD_LEDGER_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Database
    database_url: str = "sqlite:///./card_ledger.db"
    create_tables_on_startup: bool = True

    # Service
    service_name: str = "card-ledger"
    log_level: str = "INFO"

    # Invoices
    invoice_category_name: str = "Card Invoice"
    invoice_category_color: str = "#E91E63"
    invoice_description_prefix: str = "Invoice"

    # Installments: "equal" gives every installment round(total / n, 2);
    # "remainder_on_last" makes the last one absorb the rounding difference
    installment_rounding: Literal["equal", "remainder_on_last"] = "equal"


settings = Settings()
