from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class CollectionNames:
    """Firestore collection names used by the console core."""

    users: str = "users"
    prompts: str = "prompt"
    countries: str = "countries"
    categories: str = "categories"
    devices: str = "devices"
    settings: str = "app_settings"
    settings_document: str = "app_config"

    @classmethod
    def from_env(cls) -> "CollectionNames":
        """Load configuration from environment variables."""

        return cls(
            users=os.getenv("CONSOLE_USERS_COLLECTION", "users"),
            prompts=os.getenv("CONSOLE_PROMPTS_COLLECTION", "prompt"),
            countries=os.getenv("CONSOLE_COUNTRIES_COLLECTION", "countries"),
            categories=os.getenv("CONSOLE_CATEGORIES_COLLECTION", "categories"),
            devices=os.getenv("CONSOLE_DEVICES_COLLECTION", "devices"),
            settings=os.getenv("CONSOLE_SETTINGS_COLLECTION", "app_settings"),
            settings_document=os.getenv("CONSOLE_SETTINGS_DOCUMENT", "app_config"),
        )
