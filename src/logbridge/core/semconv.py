"""Semantic-convention attribute keys (OpenTelemetry semconv v1.26.0)."""

CODE_FILEPATH = "code.filepath"
CODE_FUNCTION = "code.function"
CODE_NAMESPACE = "code.namespace"
CODE_LINENO = "code.lineno"
CODE_STACKTRACE = "code.stacktrace"

EXCEPTION_TYPE = "exception.type"
EXCEPTION_MESSAGE = "exception.message"
EXCEPTION_STACKTRACE = "exception.stacktrace"
