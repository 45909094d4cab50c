# catalog/
# 模板目录的发现、加载与校验模块。

from redbox.catalog.loader import (
    DEFAULT_CATALOG,
    Catalog,
    CatalogLoader,
    default_catalog,
    load_catalog,
)
from redbox.catalog.validator import (
    CATALOG_NOT_FOUND,
    CATALOG_SCHEMA_INVALID,
    DUPLICATE_ID,
    UNKNOWN_METRIC,
    UNRESOLVED_TOKEN,
    CatalogValidationError,
)

__all__ = [
    "Catalog",
    "CatalogLoader",
    "CatalogValidationError",
    "DEFAULT_CATALOG",
    "default_catalog",
    "load_catalog",
    "CATALOG_NOT_FOUND",
    "CATALOG_SCHEMA_INVALID",
    "DUPLICATE_ID",
    "UNKNOWN_METRIC",
    "UNRESOLVED_TOKEN",
]
