# pawmatch/matching/geo.py
"""구면 거리 계산 함수 모음. 모든 입력은 도(degree) 단위입니다."""

from math import radians, sin, cos, sqrt, atan2

EARTH_RADIUS_KM = 6371.0


def central_angle(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """두 지점 사이의 중심각(라디안)을 haversine 공식으로 계산합니다."""
    phi1, phi2 = radians(lat1), radians(lat2)
    d_lat = radians(lat2 - lat1)
    d_lng = radians(lng2 - lng1)

    a = sin(d_lat / 2) ** 2 + cos(phi1) * cos(phi2) * sin(d_lng / 2) ** 2
    # 부동소수 오차로 a가 [0, 1]을 살짝 벗어나는 경우를 막습니다.
    a = min(1.0, max(0.0, a))
    return 2 * atan2(sqrt(a), sqrt(1 - a))


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """두 지점 사이의 대원 거리(km)."""
    return EARTH_RADIUS_KM * central_angle(lat1, lng1, lat2, lng2)


def km_to_radians(distance_km: float) -> float:
    return distance_km / EARTH_RADIUS_KM
