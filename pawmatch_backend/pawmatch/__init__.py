# pawmatch/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import os
import logging
from flask import Flask, jsonify
from marshmallow import ValidationError
from flask_jwt_extended import JWTManager

# - 설정
from pawmatch.core.config import config_by_name

# - API 블루프린트
from pawmatch.api.pets.routes import pets_bp

# - 서비스 모듈
from pawmatch.api.pets.services import PetService
from pawmatch.services.pet_store import PetStore
from pawmatch.services.memory_pet_store import InMemoryPetStore
from pawmatch.matching import (
    MatchOrchestrator, AttributeMatcher, ProximitySearch, DistanceRanker, LocationResolver
)
from pawmatch.utils.fake_data import seed_store


def _create_pet_store(app: Flask) -> PetStore:
    """설정된 백엔드에 맞는 레코드 저장소를 생성합니다."""
    backend = app.config['PET_STORE_BACKEND']
    if backend == 'memory':
        logging.info("Using in-memory pet store.")
        return InMemoryPetStore()
    if backend != 'firestore':
        raise ValueError(f"지원하지 않는 PET_STORE_BACKEND 값입니다: {backend}")

    import firebase_admin
    from firebase_admin import credentials
    from pawmatch.services.firestore_pet_store import FirestorePetStore

    if not firebase_admin._apps:
        cred_path = app.config['FIREBASE_CREDENTIALS_PATH']
        if not cred_path or not os.path.exists(cred_path):
            raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
        firebase_admin.initialize_app(credentials.Certificate(cred_path))
    return FirestorePetStore()


def create_app(config_name=None):
    """
    Flask 애플리케이션 팩토리 함수.
    config_name이 없으면 FLASK_ENV 환경 변수로 설정 클래스를 고릅니다.
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    if not app.debug and not app.testing:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    # =====================================================================================
    # 4. 확장 기능 및 외부 서비스 초기화
    # =====================================================================================
    if not app.config.get('JWT_SECRET_KEY'):
        raise ValueError("필수 환경 변수가 설정되지 않았습니다: JWT_SECRET_KEY")
    JWTManager(app)

    # =====================================================================================
    # 5. 서비스 인스턴스 생성 및 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    app.services = {}

    try:
        app.services['pet_store'] = _create_pet_store(app)
    except Exception as e:
        logging.error(f"Failed to initialize pet store: {e}")
        raise

    store = app.services['pet_store']
    app.services['pets'] = PetService(store)
    app.services['matching'] = MatchOrchestrator(
        store=store,
        matcher=AttributeMatcher(threshold=app.config['MATCH_THRESHOLD']),
        proximity=ProximitySearch(store, max_workers=app.config['PROXIMITY_MAX_WORKERS']),
        ranker=DistanceRanker(LocationResolver()),
        cross_product_warn_limit=app.config['MATCH_CROSS_PRODUCT_WARN_LIMIT'],
    )
    logging.info("Matching service initialized successfully")

    # 저장소가 비어 있을 때만 개발용 데이터를 채웁니다. 실패해도 서버는 계속 뜹니다.
    if app.config.get('SEED_ON_STARTUP'):
        try:
            seed_store(store, count=app.config['SEED_PET_COUNT'])
        except Exception as e:
            logging.error(f"Seeding failed: {e}", exc_info=True)

    # =====================================================================================
    # 6. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(pets_bp, url_prefix='/api/pets')

    # =====================================================================================
    # 7. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"success": False, "error_code": "VALIDATION_ERROR",
                    "error": "입력값이 올바르지 않습니다.", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # HTTP 예외(404, 405 등)는 원래 상태 코드를 유지합니다.
        code = getattr(err, 'code', None)
        if isinstance(code, int) and 400 <= code < 500:
            return jsonify({"success": False, "error_code": "HTTP_ERROR", "error": getattr(err, 'description', str(err))}), code
        # 다른 핸들러에서 처리되지 않은 모든 예외를 여기서 처리
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"success": False, "error_code": "INTERNAL_SERVER_ERROR", "error": "서버 내부에서 예상치 못한 오류가 발생했습니다."}
        return jsonify(response), 500

    # =====================================================================================
    # 8. 앱 반환
    # =====================================================================================
    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
