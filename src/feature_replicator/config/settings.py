"""Runtime settings for Feature Replicator.

Loads settings from environment variables using python-dotenv.
"""
from __future__ import annotations
import os
from dotenv import load_dotenv

# Load .env file
load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self) -> None:
        """Initialize settings from environment variables."""
        # Tool configuration (languages, extensions, legacy lookup tables)
        self.tool_config_path = os.getenv("FEATURE_REPLICATOR_CONFIG", "")

        # Logging
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        self.log_file = os.getenv("LOG_FILE", "")

        # Scanning
        self.max_content_chars = int(os.getenv("MAX_CONTENT_CHARS", "2000000"))
        self.respect_gitignore = os.getenv("RESPECT_GITIGNORE", "false").lower() == "true"
