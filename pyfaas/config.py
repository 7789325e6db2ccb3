"""Configuration management for pyfaas.

Settings are resolved from the environment first and then from
``~/.config/pyfaas/config``, a plain ``KEY=value`` file.
"""

import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://va.faasui.liveperson.net"

TOKEN_KEY = "FAAS_TOKEN"
ACCOUNT_ID_KEY = "FAAS_ACCOUNT_ID"
API_URL_KEY = "FAAS_API_URL"
USER_ID_KEY = "FAAS_USER_ID"


class Config:
    """Resolves pyfaas settings from environment variables and the config file."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config file. Defaults to
                ~/.config/pyfaas
        """
        self.config_dir = config_dir or Path.home() / ".config" / "pyfaas"
        self.config_file = self.config_dir / "config"

    def _read_file(self) -> dict[str, str]:
        """Read KEY=value pairs from the config file."""
        values: dict[str, str] = {}
        if not self.config_file.exists():
            return values

        try:
            content = self.config_file.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("Could not read config file %s: %s", self.config_file, e)
            return values

        for line in content.splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            values[key.strip()] = value.strip().strip('"').strip("'")
        return values

    def _get(self, key: str) -> Optional[str]:
        value = os.environ.get(key)
        if value:
            return value
        return self._read_file().get(key)

    @property
    def token(self) -> Optional[str]:
        """Bearer token used for platform requests."""
        return self._get(TOKEN_KEY)

    @property
    def account_id(self) -> Optional[str]:
        """Account the functions belong to."""
        return self._get(ACCOUNT_ID_KEY)

    @property
    def user_id(self) -> Optional[str]:
        """Optional user id sent along with every request."""
        return self._get(USER_ID_KEY)

    @property
    def api_url(self) -> str:
        """Base URL of the functions platform."""
        return self._get(API_URL_KEY) or DEFAULT_API_URL

    def is_configured(self) -> bool:
        """Check whether a token and an account id are available."""
        return bool(self.token and self.account_id)

    def get_config_path(self) -> Path:
        """Return the path of the config file."""
        return self.config_file

    def save(
        self,
        token: Optional[str] = None,
        account_id: Optional[str] = None,
        api_url: Optional[str] = None,
    ) -> None:
        """Persist settings to the config file, keeping unrelated keys.

        Args:
            token: Bearer token to store
            account_id: Account id to store
            api_url: API base URL to store
        """
        values = self._read_file()
        if token:
            values[TOKEN_KEY] = token
        if account_id:
            values[ACCOUNT_ID_KEY] = account_id
        if api_url:
            values[API_URL_KEY] = api_url

        self.config_dir.mkdir(parents=True, exist_ok=True)
        lines = [f"{key}={value}" for key, value in sorted(values.items())]
        self.config_file.write_text("\n".join(lines) + "\n", encoding="utf-8")
        # The token is a credential
        self.config_file.chmod(0o600)


config = Config()
