from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from app.errors import ConfigurationError


@dataclass
class RawResult:
    """One unstructured search hit; only title/url/content are guaranteed."""

    title: str
    url: str
    content: str = ""
    raw_content: Optional[str] = None
    score: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class BaseScraper(ABC):
    """Base class for listing providers"""

    source: str = "unknown"

    @abstractmethod
    def is_configured(self) -> bool:
        """Whether the provider credentials are present"""

    def ensure_configured(self) -> None:
        if not self.is_configured():
            raise ConfigurationError(f"{self.display_name} API key is not configured.")

    @property
    def display_name(self) -> str:
        return self.source.replace("_", " ").title()
