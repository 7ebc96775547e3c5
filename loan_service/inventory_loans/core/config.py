from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Database (sqlite:// = base de datos en memoria)
    database_url: str = "sqlite://"
    database_echo: bool = False

    # Préstamos
    default_loan_days: int = 7
    max_loan_days: Optional[int] = 90

    # Inventario
    low_stock_threshold: int = 1

    # Listados
    default_page_size: int = 8

    project_name: str = "Inventory Loans"

    class Config:
        env_file = ".env"
        env_prefix = "LOANS_"

settings = Settings()
