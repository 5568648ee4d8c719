"""Repositories backing the local catalog."""

from citycatalog.db.repositories.city_store import CityStore  # noqa: F401
from citycatalog.db.repositories.settings_store import (  # noqa: F401
    CatalogSettingsStore,
)
