# streamflix/scheduler.py
import atexit
import logging
from datetime import datetime, timedelta
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from .config import URL_REFRESH_INTERVAL_HOURS, URL_REFRESH_MARGIN_MINUTES, STALE_UPLOAD_HOURS
from .database import get_db, delete_document, VIDEOS, UPLOAD_SESSIONS
from .storage import is_presigned_url_expired, generate_presigned_url, delete_objects
from .utils import utcnow_iso

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(
    timezone='UTC',
    job_defaults={
        'coalesce': True,
        'max_instances': 1
    }
)

# (저장된 URL 필드, S3 키 필드)
REFRESHABLE_URLS = (
    ('stream_url', 'video_key'),
    ('thumbnail_url', 'thumbnail_key'),
)


def refresh_expiring_urls(safety_margin_minutes=URL_REFRESH_MARGIN_MINUTES):
    """만료 임박한 presigned URL 갱신, 갱신된 문서 수 반환"""
    logger.info("🔄 백그라운드 URL 갱신 작업 시작...")

    updated_count = 0
    total_count = 0

    for doc in get_db().collection(VIDEOS).stream():
        total_count += 1
        data = doc.to_dict()
        update_data = {}

        try:
            for url_field, key_field in REFRESHABLE_URLS:
                key = data.get(key_field)
                current_url = data.get(url_field, '')
                # 한 번도 재생되지 않은 스트림 URL은 재생 시점에 발급
                if not key or not current_url:
                    continue
                if is_presigned_url_expired(current_url, safety_margin_minutes):
                    update_data[url_field] = generate_presigned_url(key)

            if update_data:
                update_data['auto_updated_at'] = utcnow_iso()
                doc.reference.update(update_data)
                updated_count += 1
                logger.info(f"✅ 문서 {doc.id} URL 갱신 완료")

        except Exception as e:
            logger.error(f"❌ 문서 {doc.id} URL 갱신 실패: {e}")

    logger.info(f"🎉 URL 갱신 완료: {updated_count}/{total_count} 개")
    return updated_count


def cleanup_stale_uploads(max_age_hours=STALE_UPLOAD_HOURS):
    """완료되지 않은 오래된 직접 업로드 정리, 정리된 세션 수 반환"""
    cutoff = (datetime.utcnow() - timedelta(hours=max_age_hours)).isoformat()
    removed = 0

    for doc in get_db().collection(UPLOAD_SESSIONS).where('status', '==', 'pending').stream():
        session = doc.to_dict()
        if (session.get('created_at') or '') >= cutoff:
            continue

        video_id = session.get('video_id')
        video_doc = get_db().collection(VIDEOS).document(video_id).get() if video_id else None
        if video_doc is not None and video_doc.exists and video_doc.to_dict().get('status') == 'pending':
            delete_objects([session.get('video_key')])
            delete_document(VIDEOS, video_id)

        doc.reference.delete()
        removed += 1
        logger.info(f"🧹 오래된 업로드 세션 정리: {doc.id}")

    return removed


def scheduler_status():
    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            'id': job.id,
            'name': job.name,
            'next_run': job.next_run_time.isoformat() if job.next_run_time else None,
            'trigger': str(job.trigger)
        })
    return {'running': scheduler.running, 'jobs': jobs}


def start_scheduler():
    """스케줄러 시작"""
    if scheduler.running:
        return

    scheduler.add_job(
        func=refresh_expiring_urls,
        trigger=IntervalTrigger(hours=URL_REFRESH_INTERVAL_HOURS),
        id='refresh_urls',
        name='URL 자동 갱신',
        replace_existing=True
    )
    scheduler.add_job(
        func=cleanup_stale_uploads,
        trigger=IntervalTrigger(hours=1),
        id='cleanup_uploads',
        name='미완료 업로드 정리',
        replace_existing=True
    )

    scheduler.start()
    logger.info("🚀 백그라운드 스케줄러가 시작되었습니다.")

    # 앱 종료 시 스케줄러도 함께 종료
    atexit.register(lambda: scheduler.shutdown(wait=False))
