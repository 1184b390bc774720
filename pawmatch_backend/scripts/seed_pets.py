# scripts/seed_pets.py
"""
설정된 저장소(FLASK_ENV / PET_STORE_BACKEND)에 가짜 반려동물 데이터를 채웁니다.

사용법: python scripts/seed_pets.py --count 80 --seed 7 [--force]
"""
import argparse
import os
import sys

from dotenv import load_dotenv

# scripts 폴더의 상위(pawmatch_backend)를 import 경로에 추가합니다.
base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, base_dir)
load_dotenv(dotenv_path=os.path.join(base_dir, '.env'))

from pawmatch import create_app
from pawmatch.utils.fake_data import seed_store


def main():
    parser = argparse.ArgumentParser(description="가짜 반려동물 데이터 생성")
    parser.add_argument('--count', type=int, default=50, help="생성할 반려동물 수")
    parser.add_argument('--seed', type=int, default=42, help="난수 seed (같은 값이면 같은 데이터)")
    parser.add_argument('--force', action='store_true', help="저장소에 데이터가 있어도 생성")
    args = parser.parse_args()

    app = create_app()
    store = app.services['pet_store']
    try:
        inserted = seed_store(store, count=args.count, seed=args.seed, force=args.force)
        print(f"{inserted}개의 반려동물 데이터를 생성했습니다.")
    except Exception as e:
        print(f"데이터 생성 중 오류 발생: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
