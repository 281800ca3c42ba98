# streamflix/recommendations.py
"""
프로필별 콘텐츠 기반 추천

시청 기록, 평가, 찜 목록을 카테고리/태그 선호도 점수로 모은 뒤
아직 보지 않은 비디오에 점수를 매깁니다. 선호도 신호가 없으면
인기순(조회수)으로 대체합니다.
"""
import math
import logging
from collections import defaultdict
from . import catalog, profiles

logger = logging.getLogger(__name__)

SIGNAL_WEIGHTS = {
    'watched': 1.0,
    'completed': 1.5,
    'up': 2.0,
    'down': -2.0,
    'watchlist': 1.0
}
TAG_WEIGHT = 0.5
POPULARITY_WEIGHT = 0.1

REASON_PERSONAL = 'because_you_watched'
REASON_POPULAR = 'popular'


def build_affinity(signals, videos_by_id):
    """(video_id, weight) 신호 목록 → (카테고리 점수, 태그 점수)"""
    category_scores = defaultdict(float)
    tag_scores = defaultdict(float)
    for video_id, weight in signals:
        video = videos_by_id.get(video_id)
        if not video:
            continue
        for category_id in video.get('category_ids', []):
            category_scores[category_id] += weight
        for tag in video.get('tags', []):
            tag_scores[tag] += weight
    return category_scores, tag_scores


def score_video(video, category_scores, tag_scores):
    score = sum(category_scores.get(c, 0.0) for c in video.get('category_ids', []))
    score += TAG_WEIGHT * sum(tag_scores.get(t, 0.0) for t in video.get('tags', []))
    score += POPULARITY_WEIGHT * math.log1p(max(int(video.get('view_count', 0)), 0))
    return score


def collect_signals(profile_id):
    """프로필의 시청/평가/찜 기록 → 신호 목록과 추천 제외 대상"""
    signals = []
    excluded = set()

    for entry in profiles.list_history(profile_id, include_completed=True):
        # 끝까지 본 것과 이어보기 중인 것은 추천하지 않음
        excluded.add(entry['video_id'])
        weight = SIGNAL_WEIGHTS['completed'] if entry.get('completed') else SIGNAL_WEIGHTS['watched']
        signals.append((entry['video_id'], weight))

    for video_id, rating in profiles.list_ratings(profile_id).items():
        if rating == 'down':
            excluded.add(video_id)
        signals.append((video_id, SIGNAL_WEIGHTS.get(rating, 0.0)))

    for entry in profiles.list_watchlist(profile_id):
        signals.append((entry['video_id'], SIGNAL_WEIGHTS['watchlist']))

    return signals, excluded


def recommend_for_profile(profile, limit=20):
    """프로필 추천 목록"""
    visible = catalog.load_visible_videos(profile['maturity_limit'])
    signals, excluded = collect_signals(profile['id'])

    # 선호도 계산은 등급과 무관하게 실제 시청한 비디오 정보를 사용
    signal_ids = {video_id for video_id, _ in signals}
    videos_by_id = dict(visible)
    missing = [video_id for video_id in signal_ids if video_id not in videos_by_id]
    videos_by_id.update(catalog.get_videos_by_ids(missing))

    category_scores, tag_scores = build_affinity(signals, videos_by_id)
    has_affinity = any(v > 0 for v in category_scores.values()) or any(v > 0 for v in tag_scores.values())

    candidates = [(video_id, data) for video_id, data in visible if video_id not in excluded]

    if has_affinity:
        reason = REASON_PERSONAL
        scored = [(video_id, data, score_video(data, category_scores, tag_scores)) for video_id, data in candidates]
        scored.sort(key=lambda item: item[1].get('created_at') or '', reverse=True)
        scored.sort(key=lambda item: item[2], reverse=True)
    else:
        reason = REASON_POPULAR
        scored = [(video_id, data, 0.0) for video_id, data in catalog.sort_videos(candidates, 'popular')]

    result = []
    for video_id, data, score in scored[:limit]:
        summary = catalog.serialize_video(video_id, data)
        summary['score'] = round(score, 4)
        result.append(summary)

    logger.info(f"🎯 추천 생성: 프로필 {profile['id']} - {len(result)}개 ({reason})")
    return {'profile_id': profile['id'], 'reason': reason, 'videos': result}
