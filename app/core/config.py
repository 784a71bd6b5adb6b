# app/core/config.py

"""
애플리케이션의 설정 값을 관리하는 모듈입니다.

pydantic-settings를 사용하여 환경 변수 또는 .env 파일에서 설정을 로드합니다.
민감한 값(DB 접속 문자열, JWT 키, QR 서명 키)은 SecretStr로 보관합니다.
"""

from pathlib import Path
from typing import List, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# 프로젝트 루트 디렉토리 (app 패키지의 상위)
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )

    # =========================================================================
    # 1. 애플리케이션 기본 설정
    # =========================================================================
    APP_NAME: str = "WFM FastAPI API"
    APP_VERSION: str = "0.1.0"
    APP_ENV: str = Field("development", description="실행 환경 (development / production / test)")
    DEBUG_MODE: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    # =========================================================================
    # 2. 데이터베이스 설정
    # =========================================================================
    DATABASE_URL: SecretStr = Field(..., description="비동기 DB 접속 URL (예: postgresql+asyncpg://...)")

    # =========================================================================
    # 3. 인증(JWT) 설정
    # =========================================================================
    SECRET_KEY: SecretStr = Field(..., description="JWT 서명 키")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # =========================================================================
    # 4. QR 출석 토큰 서명 키
    # =========================================================================
    # 값이 없으면 QR 생성/검증 시점에 설정 오류가 발생합니다.
    QR_SECRET: Optional[SecretStr] = None


settings = Settings()
