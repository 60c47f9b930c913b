"""OpenTelemetry spans around window selection and prompt packing.

Tracing is off unless the entry point builds a :class:`WindowTracer` with an
exporter and installs it; until then every span is a no-op.
"""

from __future__ import annotations

import contextlib
import os
from collections.abc import Generator, Mapping
from dataclasses import dataclass

from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import NoOpTracer, Span, Tracer

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass
class TelemetryConfig:
    """Tracing settings; ``exporter`` is ``"none"``, ``"stdout"`` or ``"otlp"``."""

    service_name: str = "chatwindow"
    exporter: str = "none"
    otlp_endpoint: str = "http://localhost:4317"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> TelemetryConfig:
        """Read ``CHATWINDOW_TRACE_EXPORTER`` and ``CHATWINDOW_OTLP_ENDPOINT``."""
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            exporter=env.get("CHATWINDOW_TRACE_EXPORTER", defaults.exporter).strip().lower(),
            otlp_endpoint=env.get("CHATWINDOW_OTLP_ENDPOINT", defaults.otlp_endpoint),
        )


# ---------------------------------------------------------------------------
# WindowTracer
# ---------------------------------------------------------------------------


class WindowTracer:
    """Owns the tracer that selection and packing spans are recorded on.

    Pass ``tracer_provider`` to record onto an existing provider (tests use
    an in-memory exporter this way); otherwise :meth:`init` builds one from
    the config.
    """

    def __init__(
        self,
        config: TelemetryConfig | None = None,
        tracer_provider: TracerProvider | None = None,
    ) -> None:
        self._config = config or TelemetryConfig()
        self._provider = tracer_provider
        self._tracer: Tracer = (
            tracer_provider.get_tracer(self._config.service_name)
            if tracer_provider is not None
            else NoOpTracer()
        )

    def init(self) -> None:
        """Build a TracerProvider for the configured exporter."""
        cfg = self._config
        if cfg.exporter == "none" or self._provider is not None:
            return

        from opentelemetry.sdk.trace.export import SimpleSpanProcessor

        if cfg.exporter == "stdout":
            from opentelemetry.sdk.trace.export import ConsoleSpanExporter

            exporter = ConsoleSpanExporter()
        elif cfg.exporter == "otlp":
            try:
                from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
                    OTLPSpanExporter,
                )
            except ImportError as e:  # pragma: no cover
                raise ImportError(
                    "OTLP exporter required. Install with: "
                    "pip install 'chatwindow[otlp]'"
                ) from e
            exporter = OTLPSpanExporter(endpoint=cfg.otlp_endpoint, insecure=True)
        else:
            msg = f"Unknown trace exporter '{cfg.exporter}'. Valid values: none, otlp, stdout"
            raise ValueError(msg)

        provider = TracerProvider(resource=Resource.create({"service.name": cfg.service_name}))
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        self._provider = provider
        self._tracer = provider.get_tracer(cfg.service_name)

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: dict[str, str] | None = None,
    ) -> Generator[Span, None, None]:
        with self._tracer.start_as_current_span(name, attributes=attributes) as s:
            yield s

    def shutdown(self) -> None:
        """Flush pending spans. Safe to call more than once."""
        if self._provider is not None:
            self._provider.shutdown()
            self._provider = None
            self._tracer = NoOpTracer()


# ---------------------------------------------------------------------------
# Process default (no-op until the entry point installs one)
# ---------------------------------------------------------------------------

_DEFAULT_TRACER: WindowTracer | None = None


def _get_default_tracer() -> WindowTracer:
    global _DEFAULT_TRACER  # noqa: PLW0603
    if _DEFAULT_TRACER is None:
        _DEFAULT_TRACER = WindowTracer()
    return _DEFAULT_TRACER


def install_tracer(tracer: WindowTracer) -> None:
    """Route the selection and packing spans through *tracer*."""
    global _DEFAULT_TRACER  # noqa: PLW0603
    _DEFAULT_TRACER = tracer


@contextlib.contextmanager
def trace_window_select(model: str, budget: int) -> Generator[Span, None, None]:
    """Trace one chat-window selection."""
    attrs = {"chatwindow.model": model, "chatwindow.budget": str(budget)}
    with _get_default_tracer().span("window/select", attrs) as s:
        yield s


@contextlib.contextmanager
def trace_prompt_pack(model: str, budget: int) -> Generator[Span, None, None]:
    """Trace one system-prompt packing pass."""
    attrs = {"chatwindow.model": model, "chatwindow.budget": str(budget)}
    with _get_default_tracer().span("prompt/pack", attrs) as s:
        yield s
