"""
Credential storage for the engmetrics CLI.

Keys are kept in a JSON file in the user's home directory. Environment
variables take precedence over stored values so CI jobs can run without a
config file.
"""

import json
import logging
import os
from typing import Dict, Optional

DEFAULT_CREDENTIALS_FILE = os.path.join(os.path.expanduser('~'), '.engmetrics', 'credentials.json')

GITHUB_TOKEN = 'github_token'
ANTHROPIC_API_KEY = 'anthropic_api_key'
CURSOR_API_KEY = 'cursor_api_key'
BUILDER_PRIVATE_KEY = 'builder_private_key'

# Stored key -> environment variable that overrides it
ENVIRONMENT_OVERRIDES = {
    GITHUB_TOKEN: 'GITHUB_TOKEN',
    ANTHROPIC_API_KEY: 'ANTHROPIC_API_KEY',
    CURSOR_API_KEY: 'CURSOR_API_KEY',
    BUILDER_PRIVATE_KEY: 'BUILDER_PRIVATE_KEY',
}


class CredentialStore:
    """Loads and saves API credentials."""

    def __init__(self, path: str = DEFAULT_CREDENTIALS_FILE):
        """
        Initialize the credential store.

        Args:
            path: Path to the credentials JSON file
        """
        self.path = path
        self.credentials: Dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        """Load stored credentials if the file exists."""
        if not os.path.exists(self.path):
            logging.debug(f"No credentials file found at {self.path}")
            return
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                self.credentials = json.load(f).get('credentials', {})
                logging.debug(f"Loaded {len(self.credentials)} credential(s) from {self.path}")
        except (json.JSONDecodeError, IOError) as e:
            logging.warning(f"Could not load credentials from {self.path}: {e}")
            self.credentials = {}

    def save(self) -> None:
        """Write the credentials file, readable by the owner only."""
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump({'credentials': self.credentials}, f, indent=2)
        os.chmod(self.path, 0o600)
        logging.info(f"Saved credentials to {self.path}")

    def get(self, key: str) -> Optional[str]:
        """
        Get a credential, preferring its environment variable.

        Args:
            key: One of the stored key names (e.g. 'github_token')

        Returns:
            The credential, or None if it is not configured
        """
        env_name = ENVIRONMENT_OVERRIDES.get(key)
        if env_name and os.environ.get(env_name):
            return os.environ[env_name]
        return self.credentials.get(key) or None

    def is_stored(self, key: str) -> bool:
        """Whether the key is present in the file (ignoring the environment)."""
        return bool(self.credentials.get(key))

    def update(self, values: Dict[str, str]) -> None:
        """Store several credentials and save the file once."""
        self.credentials.update(values)
        self.save()
