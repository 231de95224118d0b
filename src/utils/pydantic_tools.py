from typing import Any

from pydantic import BaseModel


class BaseModelWithMethods(BaseModel):
    """Base model with JSON/dict helpers used across the TMDB and service models."""

    def to_json(self, **kwargs: Any) -> str:
        return self.model_dump_json(**kwargs)

    def to_dict(self, json_safe: bool = False) -> dict[str, Any]:
        """Dump to a dict. With json_safe=True, dates and enums become strings."""
        return self.model_dump(mode="json" if json_safe else "python")
