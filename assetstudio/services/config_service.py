"""
Configuration service for studio settings.

Provides a single source of truth for generation checkpoints, AI provider
selection, upload rules and seed prompt templates, following the DRY
principle and Open/Closed Principle.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Any, Optional

from assetstudio import env_config
from assetstudio.models.domain import AssetType


@dataclass(frozen=True)
class CheckpointSchedule:
    """Progress percentages reported during generation, and the pause before each."""
    steps: List[int]
    delay_seconds: float


class ConfigService:
    """Service for loading and providing studio configuration."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize the configuration service.

        Args:
            config_path: Path to configuration JSON file.
                        Defaults to ASSET_STUDIO_CONFIG, then
                        assetstudio/config/studio_config.json
        """
        if config_path is None:
            if env_config.CONFIG_PATH:
                config_path = Path(env_config.CONFIG_PATH)
            else:
                package_dir = Path(__file__).parent.parent
                config_path = package_dir / "config" / "studio_config.json"

        self.config_path = config_path
        self._config = None

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from JSON file.

        Raises:
            FileNotFoundError: If config file doesn't exist
            json.JSONDecodeError: If config file is invalid JSON
        """
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        with open(self.config_path, 'r', encoding='utf-8') as f:
            return json.load(f)

    @property
    def config(self) -> Dict[str, Any]:
        """Get the full configuration (cached)."""
        if self._config is None:
            self._config = self._load_config()
        return self._config

    def get_checkpoint_schedules(self) -> Dict[AssetType, CheckpointSchedule]:
        """Get checkpoint schedules for every asset type.

        Returns:
            Dictionary mapping asset type to its schedule
        """
        checkpoints = self.config.get("generation", {}).get("checkpoints", {})
        schedules = {}
        for asset_type in AssetType:
            entry = checkpoints.get(asset_type.value)
            if entry:
                schedules[asset_type] = CheckpointSchedule(
                    steps=[int(s) for s in entry.get("steps", [])],
                    delay_seconds=float(entry.get("delaySeconds", 0.0)),
                )
        return schedules

    def get_generation_timeout(self) -> Optional[float]:
        """Watchdog for one background generation, or None for no timeout."""
        timeout = self.config.get("generation", {}).get("timeoutSeconds")
        return float(timeout) if timeout is not None else None

    def get_supported_provider(self) -> str:
        return self.config.get("ai", {}).get("supportedProvider", "google")

    def get_default_model(self) -> str:
        return self.config.get("ai", {}).get("defaultModel", "gemini-1.5-flash")

    def get_style_image_formats(self) -> List[str]:
        """Get list of accepted style reference image extensions.

        Returns:
            List of file extensions (e.g., ['.png', '.jpg'])
        """
        return self.config.get("uploads", {}).get("styleImageFormats", [])

    def get_default_templates(self) -> List[Dict[str, Any]]:
        """Seed prompt templates written on first start."""
        return self.config.get("prompts", {}).get("defaultTemplates", [])


# Global instance for easy import
_config_service = None

def get_config_service() -> ConfigService:
    """Get the global configuration service instance.

    Returns:
        ConfigService instance
    """
    global _config_service
    if _config_service is None:
        _config_service = ConfigService()
    return _config_service
