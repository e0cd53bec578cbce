"""Configuration for csv-field-mapper."""

import os
from pathlib import Path
from typing import Optional, Sequence, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .models import KeywordRule, TargetFieldDefinition
from .rules import KEYWORD_RULES, PREVIEW_ROW_LIMIT, TARGET_FIELDS, load_rule_file

load_dotenv()


def _parse_cors_origins() -> list[str]:
    """Parse CORS origins from environment variable."""
    cors_env = os.getenv("CORS_ALLOW_ORIGINS")
    if cors_env:
        return cors_env.split(",")
    return ["*"]


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _rules_path() -> Optional[Path]:
    value = os.getenv("FIELD_RULES_PATH")
    return Path(value) if value else None


class Settings(BaseModel):
    """Application settings, read from the environment when instantiated."""

    # Data rows materialized for a preview
    preview_rows: int = Field(default_factory=lambda: _env_int("PREVIEW_ROWS", PREVIEW_ROW_LIMIT))

    # Records transformed between progress callbacks
    progress_every: int = Field(default_factory=lambda: _env_int("PROGRESS_EVERY", 100))

    # Exported filenames look like <prefix>_<YYYY-MM-DD><suffix>
    export_filename_prefix: str = Field(
        default_factory=lambda: os.getenv("EXPORT_FILENAME_PREFIX", "processed_data")
    )

    # Uploads above this size are rejected by the service
    max_upload_bytes: int = Field(default_factory=lambda: _env_int("MAX_UPLOAD_BYTES", 10 * 1024 * 1024))

    # Optional JSON file replacing the built-in catalog and keyword table
    field_rules_path: Optional[Path] = Field(default_factory=_rules_path)

    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    # Server settings
    host: str = Field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = Field(default_factory=lambda: _env_int("PORT", 8000))
    cors_allow_origins: list[str] = Field(default_factory=_parse_cors_origins)

    def load_rules(
        self,
    ) -> Tuple[Sequence[TargetFieldDefinition], Sequence[KeywordRule]]:
        """Catalog and keyword table in effect: the rule file when set, else the built-ins."""
        if self.field_rules_path is None:
            return TARGET_FIELDS, KEYWORD_RULES
        return load_rule_file(self.field_rules_path)


settings = Settings()
