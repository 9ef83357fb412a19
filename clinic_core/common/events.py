# clinic_core/common/events.py
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List

from django.db import transaction

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any]], None]

_registry: Dict[str, List[Handler]] = defaultdict(list)


def subscribe(event_name: str):
    """
    Decorator to register an event handler.
    Usage:
        @subscribe("inventory.low_stock")
        def handler(payload): ...
    """
    def _decorator(fn: Handler) -> Handler:
        _registry[event_name].append(fn)
        return fn
    return _decorator


def publish(event_name: str, payload: Dict[str, Any]) -> None:
    """
    Deliver an event to in-process subscribers.
    A failing subscriber is logged and does not stop the others.
    """
    for handler in _registry.get(event_name, []):
        try:
            handler(payload)
        except Exception:
            logger.exception("Subscriber %s failed for %s", getattr(handler, "__name__", handler), event_name)


def run_after_commit(fn: Callable[[], Any], *, label: str) -> None:
    """
    Schedule a side effect for after the surrounding transaction commits.

    Runs immediately when no transaction is open. Errors are logged and
    swallowed: the business write has already been committed.
    """
    def _guarded() -> None:
        try:
            fn()
        except Exception:
            logger.exception("Post-commit hook %s failed", label)

    transaction.on_commit(_guarded)


def publish_after_commit(event_name: str, payload: Dict[str, Any]) -> None:
    run_after_commit(lambda: publish(event_name, payload), label=event_name)
