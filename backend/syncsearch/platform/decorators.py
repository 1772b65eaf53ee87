"""Platform decorators."""

from typing import Callable

from syncsearch.core.shared_models import SourceKind

_SOURCE_REGISTRY: dict[SourceKind, type] = {}


def source(name: str, kind: SourceKind, supports_changes: bool = False) -> Callable[[type], type]:
    """Register a source adapter class for a source kind.

    Args:
        name: Display name for the source
        kind: The source kind the adapter serves
        supports_changes: Whether the adapter exposes a change feed

    Example:
        @source(name="Google Drive", kind=SourceKind.FOLDER, supports_changes=True)
        class GoogleDriveSource(BaseSource):
            ...
    """

    def decorator(cls: type) -> type:
        cls._name = name
        cls._kind = kind
        cls.supports_changes = supports_changes
        _SOURCE_REGISTRY[kind] = cls
        return cls

    return decorator


def get_source_class(kind: SourceKind) -> type:
    """Look up the adapter class registered for ``kind``."""
    try:
        return _SOURCE_REGISTRY[SourceKind(kind)]
    except KeyError as e:
        raise KeyError(f"No source adapter registered for kind '{kind}'") from e
