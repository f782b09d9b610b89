"""Optional Sentry error reporting."""

from __future__ import annotations

from collections.abc import Mapping

from newsroom_cms import __version__
from newsroom_cms.logging import get_logger


def configure_sentry(*, dsn: str | None, environment: str | None = None) -> bool:
    if not dsn:
        return False

    try:
        import sentry_sdk
    except ModuleNotFoundError:
        get_logger(__name__).warning("sentry.not_installed")
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=f"newsroom-cms@{__version__}",
        traces_sample_rate=0.0,
    )
    get_logger(__name__).info("sentry.initialized", environment=environment)
    return True


def capture_sentry_exception(exc: Exception, *, context: Mapping[str, object] | None = None) -> None:
    try:
        import sentry_sdk
    except ModuleNotFoundError:
        return
    with sentry_sdk.new_scope() as scope:
        for key, value in (context or {}).items():
            scope.set_extra(str(key), value)
        sentry_sdk.capture_exception(exc)
