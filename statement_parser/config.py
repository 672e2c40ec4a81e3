"""
Settings for the statement parser.
Most values can be overridden through an environment variable of the same name.
"""

import os
from decimal import Decimal
from pathlib import Path
from typing import Optional

class Config:
    """Parser, upload, output and logging settings."""

    # Application Settings
    APP_NAME = "Bank Statement Parser"
    VERSION = "1.0.0"

    # File Upload Settings
    MAX_FILE_SIZE_MB: int = int(os.getenv("MAX_FILE_SIZE_MB", "20"))
    MAX_FILE_SIZE_BYTES: int = MAX_FILE_SIZE_MB * 1024 * 1024
    ALLOWED_FILE_TYPES: list[str] = [".pdf"]

    # Output Settings
    OUTPUT_DIR: Path = Path(os.getenv("OUTPUT_DIR", "./output"))
    LOG_DIR: Path = Path(os.getenv("LOG_DIR", "./logs"))

    # Section Detection Settings
    SECTION_MARKER: str = os.getenv("SECTION_MARKER", "Transaction History")
    REQUIRE_SECTION_MARKER: bool = os.getenv("REQUIRE_SECTION_MARKER", "false").lower() == "true"
    MAX_CONTINUATION_LINES: int = int(os.getenv("MAX_CONTINUATION_LINES", "10"))

    # Fee Heuristic Settings (both bounds exclusive)
    FEE_MIN_MAGNITUDE: Decimal = Decimal(os.getenv("FEE_MIN_MAGNITUDE", "0.01"))
    FEE_MAX_MAGNITUDE: Decimal = Decimal(os.getenv("FEE_MAX_MAGNITUDE", "100.00"))

    # Duplicate Detection Settings
    FINGERPRINT_LENGTH: int = int(os.getenv("FINGERPRINT_LENGTH", "16"))

    DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "ZAR")

    # Logging Settings
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"

    # API Settings
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))

    @classmethod
    def ensure_directories(cls):
        """Create OUTPUT_DIR and LOG_DIR if missing."""
        cls.OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
        cls.LOG_DIR.mkdir(parents=True, exist_ok=True)

    @classmethod
    def get_output_path(cls, filename: str) -> Path:
        """Path of a result file inside OUTPUT_DIR."""
        cls.ensure_directories()
        return cls.OUTPUT_DIR / filename

    @classmethod
    def get_log_path(cls, filename: str) -> Path:
        """Path of a log file inside LOG_DIR."""
        cls.ensure_directories()
        return cls.LOG_DIR / filename

    @classmethod
    def validate_file(cls, filename: str, file_size: int) -> tuple[bool, Optional[str]]:
        """
        Validate uploaded statement file.

        Returns:
            tuple: (is_valid, error_message)
        """
        if not filename or not any(filename.lower().endswith(ext) for ext in cls.ALLOWED_FILE_TYPES):
            return False, f"Invalid file type. Allowed types: {', '.join(cls.ALLOWED_FILE_TYPES)}"

        if file_size > cls.MAX_FILE_SIZE_BYTES:
            return False, f"File too large ({file_size / (1024 * 1024):.2f} MB). Maximum: {cls.MAX_FILE_SIZE_MB} MB"

        if file_size == 0:
            return False, "File is empty"

        return True, None

    @classmethod
    def to_dict(cls) -> dict:
        """Settings as a JSON-friendly dictionary."""
        return {
            "app_name": cls.APP_NAME,
            "version": cls.VERSION,
            "max_file_size_mb": cls.MAX_FILE_SIZE_MB,
            "output_dir": str(cls.OUTPUT_DIR),
            "log_dir": str(cls.LOG_DIR),
            "section_marker": cls.SECTION_MARKER,
            "require_section_marker": cls.REQUIRE_SECTION_MARKER,
            "max_continuation_lines": cls.MAX_CONTINUATION_LINES,
            "fee_min_magnitude": str(cls.FEE_MIN_MAGNITUDE),
            "fee_max_magnitude": str(cls.FEE_MAX_MAGNITUDE),
            "fingerprint_length": cls.FINGERPRINT_LENGTH,
            "default_currency": cls.DEFAULT_CURRENCY,
            "log_level": cls.LOG_LEVEL,
        }


# Shared instance
config = Config()
