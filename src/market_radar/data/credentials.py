"""API credential providers."""

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)


class CredentialProvider(ABC):
    """Read/write access to a single API credential."""

    @abstractmethod
    def get(self) -> Optional[str]:
        """Return the credential, or None when not configured."""
        pass

    @abstractmethod
    def set(self, value: str) -> None:
        """Store a new credential."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove the stored credential."""
        pass


class InMemoryCredentialProvider(CredentialProvider):
    """Credential held in process memory only."""

    def __init__(self, value: Optional[str] = None):
        self._value = value or None

    def get(self) -> Optional[str]:
        return self._value

    def set(self, value: str) -> None:
        self._value = value or None

    def clear(self) -> None:
        self._value = None


class EnvCredentialProvider(CredentialProvider):
    """Credential read from an environment variable."""

    def __init__(self, variable: str = "COINMARKETCAP_API_KEY"):
        self.variable = variable

    def get(self) -> Optional[str]:
        value = os.getenv(self.variable, "").strip()
        return value or None

    def set(self, value: str) -> None:
        os.environ[self.variable] = value

    def clear(self) -> None:
        os.environ.pop(self.variable, None)


class FileCredentialProvider(CredentialProvider):
    """Credential persisted in a small JSON file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def get(self) -> Optional[str]:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text())
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read credential file {self.path}: {e}")
            return None
        value = str(data.get("api_key") or "").strip() if isinstance(data, dict) else ""
        return value or None

    def set(self, value: str) -> None:
        if not value:
            self.clear()
            return
        self.path.write_text(json.dumps({"api_key": value}))
        logger.info(f"Stored API key in {self.path}")

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
            logger.info(f"Removed API key file {self.path}")


class ChainedCredentialProvider(CredentialProvider):
    """Stored credential first, fallback second; writes go to the stored one."""

    def __init__(self, primary: CredentialProvider, fallback: CredentialProvider):
        self.primary = primary
        self.fallback = fallback

    def get(self) -> Optional[str]:
        return self.primary.get() or self.fallback.get()

    def set(self, value: str) -> None:
        self.primary.set(value)

    def clear(self) -> None:
        self.primary.clear()
