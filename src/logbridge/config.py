"""Bridge configuration."""

from dataclasses import dataclass

from opentelemetry import _logs

from logbridge import __version__
from logbridge.adapters.otel import OTelLoggerProvider, global_provider
from logbridge.core.ports import LoggerPort, LoggerProviderPort

DEFAULT_SCOPE_NAME = "logbridge"


@dataclass(frozen=True)
class Config:
    """Options shared by both bridges.

    Attributes:
        provider: An OpenTelemetry LoggerProvider or any LoggerProviderPort.
            None selects the globally registered OpenTelemetry provider,
            looked up when a logger is created.
        scope_name: Instrumentation scope name of the created logger.
        scope_version: Instrumentation scope version. Empty to omit.
        schema_url: Schema URL of the emitted attributes. Empty to omit.
        include_source: Attach code.* attributes resolved from the log call.
        inject_stacktrace: Attach a stack captured by the front-end as
            code.stacktrace.
    """

    provider: _logs.LoggerProvider | LoggerProviderPort | None = None
    scope_name: str = DEFAULT_SCOPE_NAME
    scope_version: str = __version__
    schema_url: str = ""
    include_source: bool = False
    inject_stacktrace: bool = True

    def resolve_provider(self) -> LoggerProviderPort:
        """Return the provider as a LoggerProviderPort."""
        if self.provider is None:
            return global_provider()
        if isinstance(self.provider, _logs.LoggerProvider):
            return OTelLoggerProvider(self.provider)
        return self.provider

    def logger(self, name: str | None = None) -> LoggerPort:
        """Create a logger for name, defaulting to scope_name."""
        return self.resolve_provider().get_logger(
            name or self.scope_name,
            version=self.scope_version,
            schema_url=self.schema_url,
        )
