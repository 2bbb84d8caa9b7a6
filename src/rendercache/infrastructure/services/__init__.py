from .disk_thumbnail_store import DiskThumbnailStore
from .rendering_settings_service import RenderingSettingsService
from .security_context import StaticSecurityContext

__all__ = ["DiskThumbnailStore", "RenderingSettingsService", "StaticSecurityContext"]
