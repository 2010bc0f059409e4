"""Global configuration: paths, constants, settings."""

from pathlib import Path

# Default location of the admin-edited catalog blob
DEFAULT_CATALOG_PATH = Path(".planest") / "catalog.json"

# Catalog schema version written by CatalogStore
CATALOG_SCHEMA_VERSION = "2"

# Profit margin applied when a cost item does not declare one
DEFAULT_PROFIT_MARGIN = 0.35

# Floor heights inferred when the extraction leaves them blank
DEFAULT_TWO_STORY_HEIGHT = "１階3000㎜, 2階2850㎜"
DEFAULT_SINGLE_STORY_HEIGHT = "3000㎜"

# Floor-count markers (matched as substrings of the extracted text)
TWO_STORY_MARKERS = ("2階", "二階")
SINGLE_STORY_MARKERS = ("平屋", "1階")

# Media types the extraction service accepts
SUPPORTED_MEDIA_TYPES = (
    "image/png",
    "image/jpeg",
    "image/webp",
    "application/pdf",
)

# Group id for cost items with no spec-category link
COMMON_GROUP_ID = "common"
COMMON_GROUP_NAME = "共通工事"
