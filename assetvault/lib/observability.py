"""Logfire tracing for the asset store.

``AssetStore`` wraps each operation in an ``asset.<operation>`` span and the
hook registry wraps every action and filter it fires. The GitHub backend's
httpx client and the SQL metadata engine are instrumented so their calls
nest under those spans. Everything here is a no-op until ``configure`` has
run with ``logfire.enabled`` set and the ``logfire`` extra installed.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from assetvault.config import Settings

_logfire = None
_configured = False


def is_available() -> bool:
    return _logfire is not None and _configured


def configure(settings: Settings) -> None:
    """Set up logfire from the ``logfire`` settings section.

    Called by ``create_app``; CLI runs leave tracing off.
    """
    global _logfire, _configured

    if not settings.logfire.enabled:
        return

    try:
        import logfire as lf
    except ImportError:
        return

    kwargs: dict[str, Any] = {
        "service_name": settings.logfire.service_name,
        "send_to_logfire": "if-token-present",
    }
    if settings.logfire.environment:
        kwargs["environment"] = settings.logfire.environment
    if settings.logfire.sample_rate != 1.0:
        kwargs["trace_sample_rate"] = settings.logfire.sample_rate
    if settings.logfire.console:
        kwargs["console"] = lf.ConsoleOptions()

    lf.configure(**kwargs)
    _logfire = lf
    _configured = True


def instrument_sqlalchemy(engine) -> None:
    """Trace queries issued by the SQL metadata registry's engine."""
    if is_available():
        _logfire.instrument_sqlalchemy(engine=engine)


def instrument_httpx() -> None:
    """Trace outgoing httpx requests, i.e. the GitHub contents API calls."""
    if is_available():
        _logfire.instrument_httpx()


@contextmanager
def span(name: str, **attrs: Any):
    """Open a span such as ``asset.store`` or ``hook.action:after_asset_store``.

    ``attrs`` (``asset_id``, ``principal``, ...) become span attributes.
    Yields None while tracing is off.
    """
    if is_available():
        with _logfire.span(name, **attrs) as s:
            yield s
    else:
        yield None
