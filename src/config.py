import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from errors import ConfigurationError

# Load environment variables
load_dotenv()

# Version information
__version__ = "1.0"
__app_name__ = "tgconsole"


@dataclass
class Settings:
    bot_token: Optional[str] = None
    api_id: Optional[str] = None
    api_hash: Optional[str] = None
    string_session: str = ""
    export_dir: str = "."
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls):
        """Read settings from the process environment (.env already loaded)"""
        return cls(
            bot_token=os.getenv('TG_BOT_TOKEN') or None,
            api_id=os.getenv('TG_API_ID') or None,
            api_hash=os.getenv('TG_API_HASH') or None,
            string_session=os.getenv('TG_STRING_SESSION', ''),
            export_dir=os.getenv('TG_EXPORT_DIR', '.'),
            log_level=os.getenv('LOG_LEVEL', 'WARNING').upper(),
        )

    def require_api_credentials(self):
        """Return (api_id, api_hash) or raise ConfigurationError"""
        if not all([self.api_id, self.api_hash]):
            raise ConfigurationError(
                "TG_API_ID and TG_API_HASH must be set in your .env file for this action."
            )
        try:
            api_id = int(self.api_id)
        except ValueError:
            raise ConfigurationError(f"TG_API_ID must be a number, got {self.api_id!r}.")
        return api_id, self.api_hash
