"""Logical model id -> upstream endpoint path lookup."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping


class ModelRegistry:
    def __init__(self, endpoints: Mapping[str, str], default_model: str) -> None:
        if default_model not in endpoints:
            raise ValueError(f"Default model {default_model!r} is not registered")
        self._endpoints = MappingProxyType(dict(endpoints))
        self._default_model = default_model

    @property
    def default_model(self) -> str:
        return self._default_model

    def model_ids(self) -> list[str]:
        """Registered model ids, in configuration order."""
        return list(self._endpoints)

    def resolve(self, model_id: str | None) -> str:
        """Return the endpoint for model_id, falling back to the default model."""
        if model_id is not None and model_id in self._endpoints:
            return self._endpoints[model_id]
        return self._endpoints[self._default_model]
