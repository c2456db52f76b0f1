"""Selectable models: display label -> model identifier."""
from __future__ import annotations

import logging
from pathlib import Path

from mview.utils.json_loader import read_json_dict, truthy_env
from mview.utils.resource_paths import models_json_path

logger = logging.getLogger(__name__)

DEFAULT_MODELS: dict[str, str] = {
    "工程钻石": "diamond.glb",
    "测试钻石": "dflat.glb",
}


class ModelCatalog:
    """
    Ordered mapping of labels to model identifiers.

    Loaded from `models.json`:
    {
        "models": {"Diamond": "diamond.glb", "Flat": "dflat.glb"},
        "default": "Diamond"
    }
    Missing or broken files fall back to DEFAULT_MODELS; with
    MVIEW_STRICT_SETTINGS set they raise SettingsError instead.
    """

    def __init__(self, models: dict[str, str] | None = None, default_label: str | None = None):
        self._models: dict[str, str] = dict(DEFAULT_MODELS if models is None else models)
        if not self._models:
            raise ValueError("Model catalog must contain at least one model.")
        if default_label not in self._models:
            default_label = next(iter(self._models))
        self._default_label = default_label
        self.warnings: list[str] = []

    @classmethod
    def load(cls, path: Path | None = None, *, strict: bool | None = None) -> ModelCatalog:
        path = path or models_json_path()
        if strict is None:
            strict = truthy_env("MVIEW_STRICT_SETTINGS")
        warnings: list[str] = []
        data = read_json_dict(path, strict=strict, quarantine_broken=not strict,
                              warnings=warnings, logger=logger)

        models = None
        default_label = None
        if data is not None:
            raw = data.get("models", {})
            if isinstance(raw, dict):
                models = {str(k): str(v) for k, v in raw.items() if v}
            default_label = data.get("default")
            if not models:
                warnings.append(f"No models defined in {path}")
                models = None

        catalog = cls(models, default_label)
        catalog.warnings = warnings
        logger.debug("Model catalog: %s (default=%s)", catalog.labels(), catalog.default_label)
        return catalog

    @property
    def default_label(self) -> str:
        return self._default_label

    @property
    def default_identifier(self) -> str:
        return self._models[self._default_label]

    def labels(self) -> list[str]:
        return list(self._models)

    def identifier_for(self, label: str) -> str:
        return self._models[label]

    def label_for(self, identifier: str) -> str | None:
        for label, ident in self._models.items():
            if ident == identifier:
                return label
        return None

    def items(self):
        return self._models.items()
