from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Store Catalog"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./store.db"

    # WooCommerce REST API connection
    WC_URL: str = ""
    WC_CONSUMER_KEY: str = ""
    WC_CONSUMER_SECRET: str = ""
    WC_PER_PAGE: int = 100
    WC_TIMEOUT_SECONDS: float = 30.0

    # Calendar used for order batch ids
    STORE_TIMEZONE: str = "Asia/Jakarta"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
