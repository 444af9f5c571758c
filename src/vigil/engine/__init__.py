"""Signal source plugin registry."""

from vigil.engine.desktop import DesktopSignalSource

SOURCE_REGISTRY: dict[str, type] = {
    "desktop": DesktopSignalSource,
}
