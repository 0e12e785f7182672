import logging
import threading
from contextlib import contextmanager

_thread_locals = threading.local()


def get_current_cycle_id():
    return getattr(_thread_locals, 'cycle_id', 'no-cycle')


@contextmanager
def cycle_context(cycle_id):
    """Tag every log record emitted on this thread with ``cycle_id``."""
    previous = getattr(_thread_locals, 'cycle_id', None)
    _thread_locals.cycle_id = cycle_id
    try:
        yield cycle_id
    finally:
        if previous is None:
            del _thread_locals.cycle_id
        else:
            _thread_locals.cycle_id = previous


class CycleIDFilter(logging.Filter):
    def filter(self, record):
        record.cycle_id = get_current_cycle_id()
        return True
