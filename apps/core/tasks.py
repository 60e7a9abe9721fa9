"""
Base Celery task class with logging and helpers for fire-and-forget dispatch.
"""
import logging
from celery import Task
from django.db import transaction
from apps.core.sentry_utils import add_breadcrumb, capture_exception, start_transaction

logger = logging.getLogger(__name__)

SENSITIVE_KWARGS = {'password', 'token', 'secret', 'code', 'authorization'}


class LoggedTask(Task):
    """
    Base task class with logging and Sentry integration.

    Logs task start, completion and failure, records Sentry breadcrumbs
    and wraps each run in a Sentry transaction.
    """

    def __call__(self, *args, **kwargs):
        task_id = self.request.id
        task_name = self.name

        sentry_transaction = start_transaction(
            name=f"task.{task_name}",
            op="celery.task"
        )

        logger.info(
            f"Task started: {task_name}",
            extra={
                'task_id': task_id,
                'task_name': task_name,
                'task_args': list(args)[:10],
                'task_kwargs': self._sanitize_kwargs(kwargs),
            }
        )
        add_breadcrumb(
            category="task",
            message=f"Task started: {task_name}",
            data={'task_id': task_id, 'task_name': task_name}
        )

        try:
            result = super().__call__(*args, **kwargs)
        except Exception as exc:
            logger.error(
                f"Task failed: {task_name}",
                extra={
                    'task_id': task_id,
                    'task_name': task_name,
                    'exception': str(exc),
                },
                exc_info=True
            )
            capture_exception(
                exc,
                task={
                    'task_id': task_id,
                    'task_name': task_name,
                    'kwargs': self._sanitize_kwargs(kwargs),
                }
            )
            if sentry_transaction:
                sentry_transaction.set_status("internal_error")
                sentry_transaction.finish()
            raise

        logger.info(
            f"Task completed: {task_name}",
            extra={
                'task_id': task_id,
                'task_name': task_name,
                'result': self._sanitize_result(result),
            }
        )
        if sentry_transaction:
            sentry_transaction.set_status("ok")
            sentry_transaction.finish()

        return result

    def _sanitize_kwargs(self, kwargs):
        """Mask sensitive keyword arguments before they reach the logs."""
        if not kwargs:
            return {}

        return {
            key: '********' if any(s in key.lower() for s in SENSITIVE_KWARGS) else value
            for key, value in kwargs.items()
        }

    def _sanitize_result(self, result):
        if result is None:
            return None

        result_str = str(result)
        if len(result_str) > 200:
            return result_str[:200] + '... (truncated)'
        return result_str


def dispatch(task, *args, **kwargs):
    """
    Queue ``task`` once the surrounding transaction commits.

    Dispatch is best-effort: a broker failure is logged and never reaches
    the caller.
    """
    def _send():
        try:
            task.delay(*args, **kwargs)
        except Exception:
            logger.exception(
                f"Failed to enqueue task: {task.name}",
                extra={'task_name': task.name, 'task_args': list(args)}
            )

    transaction.on_commit(_send)
