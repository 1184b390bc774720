# pawmatch/core/config.py

import os # 환경 변수를 읽기 위해 사용합니다.


def _env_bool(key: str, default: bool = False) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # JWT 토큰 서명 키. 토큰 발급은 인증 서버가 담당하고, 이 서버는 검증만 합니다.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')

    # 레코드 저장소 백엔드: 'firestore' 또는 'memory'
    PET_STORE_BACKEND = os.getenv('PET_STORE_BACKEND', 'firestore')
    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')

    # 매칭 정책: 이 점수 이상이면 '그럴듯한 매칭'으로 간주합니다.
    MATCH_THRESHOLD = float(os.getenv('MATCH_THRESHOLD', '3'))
    # 소유자 매칭 목록의 분실×발견 비교 쌍이 이 수를 넘으면 경고 로그를 남깁니다.
    MATCH_CROSS_PRODUCT_WARN_LIMIT = int(os.getenv('MATCH_CROSS_PRODUCT_WARN_LIMIT', '10000'))

    # 목록/검색 페이지네이션 기본값
    SEARCH_DEFAULT_LIMIT = int(os.getenv('SEARCH_DEFAULT_LIMIT', '20'))
    SEARCH_MAX_LIMIT = int(os.getenv('SEARCH_MAX_LIMIT', '100'))

    # 위치 기반 검색 시 동시에 실행할 근접 쿼리 수 (위치 필드 3개)
    PROXIMITY_MAX_WORKERS = int(os.getenv('PROXIMITY_MAX_WORKERS', '3'))

    # 저장소가 비어 있으면 서버 시작 시 가짜 데이터를 채웁니다.
    SEED_ON_STARTUP = _env_bool('SEED_ON_STARTUP')
    SEED_PET_COUNT = int(os.getenv('SEED_PET_COUNT', '50'))


class DevelopmentConfig(Config):
    """개발 환경을 위한 설정 클래스입니다."""
    DEBUG = True
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH', Config.FIREBASE_CREDENTIALS_PATH)


class TestingConfig(Config):
    """테스트 환경을 위한 설정 클래스입니다. 외부 서비스 없이 메모리 저장소를 사용합니다."""
    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = 'testing-secret-key-with-enough-length'
    PET_STORE_BACKEND = 'memory'
    MATCH_THRESHOLD = 3.0
    SEED_ON_STARTUP = False


class ProductionConfig(Config):
    """운영 환경을 위한 설정 클래스입니다."""
    DEBUG = False


# FLASK_ENV 값에 따라 create_app에서 설정 클래스를 선택합니다.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)
