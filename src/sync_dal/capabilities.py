from dataclasses import dataclass


@dataclass(frozen=True)
class DialectCapabilities:
    """Intrinsic feature flags of a SQL dialect.

    These describe the engine, not a particular server, and are never
    negotiated at runtime.
    """

    provider_name: str = "unspecified"
    supports_returning: bool = False
    supports_jsonb: bool = False
    supports_arrays: bool = False
    supports_schemas: bool = False
    supports_savepoints: bool = True


def capabilities_for_provider(provider: str) -> DialectCapabilities:
    """Return capability flags for a given database type."""
    normalized = (provider or "").strip().lower()
    if normalized == "postgres":
        return DialectCapabilities(
            provider_name="postgres",
            supports_returning=True,
            supports_jsonb=True,
            supports_arrays=True,
            supports_schemas=True,
        )
    if normalized == "mysql":
        # MySQL databases act as schemas.
        return DialectCapabilities(
            provider_name="mysql",
            supports_schemas=True,
        )
    if normalized == "sqlite":
        return DialectCapabilities(provider_name="sqlite")
    if normalized == "duckdb":
        return DialectCapabilities(
            provider_name="duckdb",
            supports_returning=True,
            supports_arrays=True,
            supports_schemas=True,
            supports_savepoints=False,
        )
    return DialectCapabilities(provider_name=normalized or "unspecified")
