"""Authenticated principal model."""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class Principal:
    """The signed-in user as reported by the identity provider."""

    id: str  # "sub" claim
    name: Optional[str] = None
    email: Optional[str] = None
    image: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "Principal":
        """Build a principal from verified ID token claims."""
        return cls(
            id=claims["sub"],
            name=claims.get("name") or claims.get("nickname"),
            email=claims.get("email"),
            image=claims.get("picture"),
        )

    @classmethod
    def from_session(cls, data: Mapping[str, Any]) -> "Principal":
        return cls(
            id=data["id"],
            name=data.get("name"),
            email=data.get("email"),
            image=data.get("image"),
        )

    def to_session(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def display_name(self) -> str:
        return self.name or self.email or "User"
