"""Celery tasks for the stringing workflow."""

from __future__ import annotations

from celery import shared_task  # type: ignore

from apps.passes.services import expire_passes

from .services import expire_stale_drafts as expire_drafts


# ============================================================================
# PERIODIC TASKS (Celery Beat)
# ============================================================================

@shared_task(name="stringing.expire_stale_drafts")
def expire_stale_drafts() -> dict[str, int]:
    """
    작성 기한(expires_at)이 지난 신청서를 만료 처리한다.

    만료된 신청서는 주문/대여당 하나만 허용되는 활성 신청서 자리를
    비워 준다. 매시간 Celery Beat 로 실행된다.

    Returns:
        dict: {"expired": 만료된 신청서 수}
    """
    expired = expire_drafts()
    return {"expired": expired}


@shared_task(name="stringing.expire_service_passes")
def expire_service_passes() -> dict[str, int]:
    """만료일이 지난 패키지 이용권을 만료 상태로 바꾼다. 매일 실행."""

    expired = expire_passes()
    return {"expired": expired}
