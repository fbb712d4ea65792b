from typing import Optional
from pydantic import BaseModel, ConfigDict


class CurrentUser(BaseModel):
    """Authenticated caller, as resolved by the identity layer."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.name and self.name.strip():
            return self.name.strip()
        # Deterministic fallback handle
        import hashlib
        h = hashlib.sha1(self.id.encode("utf-8")).hexdigest()
        return f"@u_{h[-6:]}"
