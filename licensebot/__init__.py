"""
License bot package: Discord command bot + HTTP check API sharing one data directory.

Subpackages:
- config: environment settings
- db: file storage helpers (read results, per-key locks, JSON record)
- models: License and request/response structures
- services: allow-list accessor, license store, rate limiter
- ui: embed formatting
"""
# 이 패키지는 라이선스 봇과 확인 API가 같은 파일 저장소를 공유하도록 모듈별로 나누어 구성되어 있습니다.

__version__ = "1.0.0"
