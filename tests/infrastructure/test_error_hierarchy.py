import pytest

from rendercache.errors import (
    ApplicationError,
    CircularDependencyError,
    ConfigError,
    ConfigLoadError,
    ConfigValidationError,
    ConnectionPoolExhausted,
    DatabaseBusyError,
    DatabaseError,
    DomainError,
    IncompatibleSettingsError,
    InfrastructureError,
    MetadataPreconditionError,
    PixelsNotFoundError,
    RenderCacheError,
    ResolutionError,
    SettingsNotFoundError,
    ThumbnailStoreError,
)


@pytest.mark.parametrize("layer", [DomainError, InfrastructureError, ApplicationError, ConfigError])
def test_layers_share_the_root(layer):
    assert issubclass(layer, RenderCacheError)


@pytest.mark.parametrize(
    "error, layer",
    [
        (PixelsNotFoundError, DomainError),
        (SettingsNotFoundError, DomainError),
        (IncompatibleSettingsError, DomainError),
        (DatabaseError, InfrastructureError),
        (DatabaseBusyError, DatabaseError),
        (ConnectionPoolExhausted, InfrastructureError),
        (ThumbnailStoreError, InfrastructureError),
        (MetadataPreconditionError, ApplicationError),
        (ConfigLoadError, ConfigError),
        (ConfigValidationError, ConfigError),
        (CircularDependencyError, RenderCacheError),
        (ResolutionError, RenderCacheError),
    ],
)
def test_error_layers(error, layer):
    assert issubclass(error, layer)


def test_busy_error_carries_backoff():
    error = DatabaseBusyError("locked", 2.0)
    assert error.backoff == 2.0
    assert str(error) == "locked"


def test_catch_all_with_root():
    with pytest.raises(RenderCacheError):
        raise ThumbnailStoreError("disk gone")
