import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("stringing_service")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # 작성 기한이 지난 신청서 만료 - 매시간
    "expire-stale-drafts": {
        "task": "stringing.expire_stale_drafts",
        "schedule": crontab(minute=5),
    },
    # 만료일이 지난 패키지 이용권 정리 - 매일 00:10
    "expire-service-passes": {
        "task": "stringing.expire_service_passes",
        "schedule": crontab(hour=0, minute=10),
    },
}

app.conf.timezone = "Asia/Seoul"
