"""
Delayed execution queue adapters.

``publish(task, payload, not_before=None, delay=None)`` schedules ``task`` to
run with ``payload`` as keyword arguments no earlier than ``not_before`` (or
after ``delay`` seconds) and returns an opaque handle. Delivery is
at-least-once; handlers must be idempotent.
"""
from apps.common.utils import load_collaborator


def get_delayed_queue():
    return load_collaborator('DELAYED_QUEUE_BACKEND')


class CeleryDelayedQueue:
    """Publish Celery tasks with an ETA or countdown."""

    def publish(self, task, payload, not_before=None, delay=None):
        options = {}
        if not_before is not None:
            options['eta'] = not_before
        elif delay is not None:
            options['countdown'] = delay

        result = task.apply_async(kwargs=payload, **options)
        return result.id
