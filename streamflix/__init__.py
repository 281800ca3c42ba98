"""
Streamflix Backend Package

넷플릭스 스타일 스트리밍 서비스의 백엔드 기능을 제공합니다.

주요 모듈:
- app: Flask 애플리케이션 팩토리
- config: 설정 관리
- errors: API 예외 및 에러 핸들러
- auth: 회원가입, JWT 토큰, 인증 데코레이터
- database: Firestore 데이터베이스 연동
- storage: S3 파일 관리 및 presigned URL
- catalog: 카테고리 / 비디오 카탈로그
- profiles: 프로필, 시청 기록, 내가 찜한 콘텐츠, 평가
- recommendations: 프로필별 추천
- video_handler: 비디오 업로드 및 재생
- scheduler: 백그라운드 작업 스케줄링
- utils: 공통 유틸리티 함수
- *_routes: REST API 엔드포인트
"""

__version__ = "1.0.0"
__description__ = "Netflix-style Streaming Service Backend"

#config.py: 모든 설정 관리
#database.py: Firestore 데이터베이스 작업
#storage.py: S3 관련
#auth.py: 인증 및 권한 관리
#catalog.py: 카탈로그 조회/관리
#profiles.py: 프로필 및 시청 데이터
#recommendations.py: 추천 점수 계산
#video_handler.py: 비디오 업로드/재생 처리
#scheduler.py: 백그라운드 작업 스케줄링
#app.py: 메인 애플리케이션
