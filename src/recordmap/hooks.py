"""
Optional record lifecycle hooks.

A record type opts in by defining any of the methods below. Each receives the
executor running the operation (the DbMap or an open Transaction) so it can
issue further statements on the same connection. An exception raised by a
hook aborts the operation for that record and propagates unchanged.
"""
import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from recordmap.executor import SqlExecutor

logger = logging.getLogger(__name__)


@runtime_checkable
class HasPreInsert(Protocol):
    def pre_insert(self, executor: 'SqlExecutor') -> None: ...


@runtime_checkable
class HasPostInsert(Protocol):
    def post_insert(self, executor: 'SqlExecutor') -> None: ...


@runtime_checkable
class HasPreUpdate(Protocol):
    def pre_update(self, executor: 'SqlExecutor') -> None: ...


@runtime_checkable
class HasPostUpdate(Protocol):
    def post_update(self, executor: 'SqlExecutor') -> None: ...


@runtime_checkable
class HasPreDelete(Protocol):
    def pre_delete(self, executor: 'SqlExecutor') -> None: ...


@runtime_checkable
class HasPostDelete(Protocol):
    def post_delete(self, executor: 'SqlExecutor') -> None: ...


@runtime_checkable
class HasPostGet(Protocol):
    def post_get(self, executor: 'SqlExecutor') -> None: ...


HOOKS = {
    'pre_insert': HasPreInsert,
    'post_insert': HasPostInsert,
    'pre_update': HasPreUpdate,
    'post_update': HasPostUpdate,
    'pre_delete': HasPreDelete,
    'post_delete': HasPostDelete,
    'post_get': HasPostGet,
}


def run_hook(name: str, record: Any, executor: 'SqlExecutor') -> None:
    """Call record.<name>(executor) if the record implements that hook."""
    if not isinstance(record, HOOKS[name]):
        return
    logger.debug(f'Running {name} hook for {type(record).__name__}')
    getattr(record, name)(executor)
