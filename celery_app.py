"""
Celery application for queued node executions.

Start a worker with:
    celery -A celery_app worker -Q nodes --loglevel=info
"""

from celery import Celery
from config import settings

celery_app = Celery(
    "audio_nodes",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["tasks.nodes"],
)

celery_app.conf.update(
    # Payloads and results are the camelCase JSON the HTTP API speaks
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,

    # A mix holds a worker for minutes; take one job at a time and only
    # acknowledge it once it has finished
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_track_started=True,

    # Hard limit sits above the subprocess timeouts so FFmpeg's own timeout
    # error is what gets reported
    task_soft_time_limit=settings.MIX_TIMEOUT + 30,
    task_time_limit=settings.MIX_TIMEOUT + 60,

    # Results carry base64 audio; do not keep them around for long
    result_expires=3600,

    task_routes={
        "tasks.nodes.*": {"queue": "nodes"},
    },

    # Keep the pipe-separated format from utils.logging
    worker_hijack_root_logger=False,
)


if __name__ == "__main__":
    celery_app.start()
