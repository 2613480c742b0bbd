"""
API key management for WordDex translator backends.

Keys are looked up in order:
1. Environment variable (ANTHROPIC_API_KEY, OPENAI_API_KEY)
2. OS keychain via keyring

Usage:
    from worddex.keys import KeyManager

    km = KeyManager()
    km.set_key("anthropic", "sk-ant-...")
    key = km.get_key("anthropic")
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

import keyring
from keyring.errors import KeyringError

logger = logging.getLogger(__name__)

# Supported services and their env var names
SERVICES = {
    "anthropic": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
}


def env_var_for(service: str) -> str:
    return SERVICES.get(service.lower(), f"{service.upper()}_API_KEY")


@dataclass
class KeyInfo:
    """Information about an API key."""
    service: str
    is_set: bool
    source: str  # 'env', 'keyring', 'none'
    masked_value: str


class KeyManager:
    """Read and store API keys (environment first, then OS keychain)."""

    SERVICE_NAME = "WordDex"

    def _from_keyring(self, service: str) -> Optional[str]:
        try:
            return keyring.get_password(self.SERVICE_NAME, service)
        except KeyringError as e:
            logger.debug("Keyring lookup for %s failed: %s", service, e)
            return None

    def get_key(self, service: str) -> Optional[str]:
        """Get API key for a service, or None if not configured."""
        service = service.lower()
        if env_val := os.getenv(env_var_for(service)):
            return env_val
        return self._from_keyring(service)

    def set_key(self, service: str, key: str) -> None:
        """Store a key in the OS keychain."""
        keyring.set_password(self.SERVICE_NAME, service.lower(), key)

    def delete_key(self, service: str) -> bool:
        try:
            keyring.delete_password(self.SERVICE_NAME, service.lower())
            return True
        except KeyringError:
            return False

    def get_key_info(self, service: str) -> KeyInfo:
        service = service.lower()
        if env_val := os.getenv(env_var_for(service)):
            return KeyInfo(service, True, "env", mask_key(env_val))
        if key := self._from_keyring(service):
            return KeyInfo(service, True, "keyring", mask_key(key))
        return KeyInfo(service, False, "none", "")

    def list_keys(self) -> list[KeyInfo]:
        return [self.get_key_info(service) for service in SERVICES]


def mask_key(key: str) -> str:
    """Mask a key for display (first 4 and last 4 chars)."""
    if len(key) <= 12:
        return "*" * len(key)
    return f"{key[:4]}...{key[-4:]}"


def get_api_key(service: str) -> Optional[str]:
    """Convenience function to get an API key."""
    return KeyManager().get_key(service)
