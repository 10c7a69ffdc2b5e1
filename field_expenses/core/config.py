from functools import lru_cache
from pathlib import Path
from typing import Optional, Set

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment with defaults.

    Environment variable mapping follows pydantic's rules (e.g., APP_NAME, DEBUG,
    DATA_DIR, DB_FILENAME, RECEIPTS_DIR, BOOTSTRAP_ADMIN_ID).
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Basic app metadata
    app_name: str = "Field Expense Tracker"
    debug: bool = True
    version: str = "0.1.0"

    # Data & persistence
    data_dir: Path = Path("data")
    db_filename: str = "expenses.sqlite3"
    db_path: Optional[Path] = None  # derived if not provided

    # Receipt storage
    receipts_dir: Optional[Path] = None  # derived if not provided
    receipts_base_url: str = "/receipts/files"
    max_receipt_bytes: int = 5 * 1024 * 1024
    allowed_receipt_types: Set[str] = {"image/jpeg", "image/png", "image/webp"}

    # First administrator, created on startup when set
    bootstrap_admin_id: Optional[str] = None
    bootstrap_admin_name: str = "Administrator"
    bootstrap_admin_email: Optional[str] = None

    def init_post_load(self) -> None:
        """Finalize derived fields and ensure directories exist."""
        if self.db_path is None:
            self.db_path = self.data_dir / self.db_filename
        if self.receipts_dir is None:
            self.receipts_dir = self.data_dir / "receipts"
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.receipts_dir.mkdir(parents=True, exist_ok=True)
        if self.max_receipt_bytes <= 0:
            raise ValueError("max_receipt_bytes must be positive")
        self.receipts_base_url = self.receipts_base_url.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
