from decimal import Decimal
from typing import List, Optional
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    env: str = "local"
    log_level: str = "INFO"

    postgres_user: str = "postgres"
    postgres_password: str = ""
    postgres_db: str = "buytown"
    postgres_host: str = "localhost"
    postgres_port: str = "5432"
    database_url_override: Optional[str] = None

    secret_key: str = "change-me"
    algorithm: str = "HS256"

    # orders
    order_number_prefix: str = "BYT"
    default_tax_rate: Decimal = Decimal("0")
    delivery_radius_km: int = 10

    # email (Brevo)
    brevo_api_key: Optional[str] = None
    mail_from: str = "orders@buytown.in"
    store_name: str = "BuyTown"
    admin_emails: List[str] = []

    # payment gateways
    gateway_timeout_seconds: float = 15.0

    phonepe_base_url: str = "https://api.phonepe.com/apis/hermes"
    phonepe_merchant_id: str = ""
    phonepe_salt_key: str = ""
    phonepe_salt_index: str = "1"
    phonepe_callback_url: str = ""

    cashfree_app_id: str = ""
    cashfree_secret_key: str = ""
    cashfree_api_version: str = "2025-01-01"
    cashfree_sandbox: bool = True
    cashfree_return_url: str = ""
    cashfree_notify_url: str = ""
    currency: str = "INR"

    @property
    def database_url(self):
        if self.database_url_override:
            return self.database_url_override
        encoded_password = quote_plus(self.postgres_password)
        return (
            f"postgresql+psycopg2://{self.postgres_user}:"
            f"{encoded_password}@{self.postgres_host}:"
            f"{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def cashfree_base_url(self):
        if self.cashfree_sandbox:
            return "https://sandbox.cashfree.com/pg"
        return "https://api.cashfree.com/pg"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "allow"


settings = Settings()
