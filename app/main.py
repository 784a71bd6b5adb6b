# app/main.py

"""
WFM FastAPI 애플리케이션의 진입점입니다.

- 로깅 설정, 수명 주기(lifespan) 핸들러, CORS 미들웨어
- 도메인 예외(RoleAuthorizationError, QrConfigurationError)를 HTTP 응답으로 변환하는 핸들러
- 도메인 라우터 등록, 루트/헬스 체크 엔드포인트
"""

import logging
from typing import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import FastAPI, Depends, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# 핵심 설정 및 데이터베이스 모듈 임포트
from app import API_PREFIX
from app.core.config import settings
from app.core.database import create_db_and_tables, engine, get_session
from app.core.qr import QrConfigurationError
from app.core.roles import RoleAuthorizationError

# 도메인 라우터 임포트
from app.domains.usr.routers import router as usr_router
from app.domains.org.routers import router as org_router
from app.domains.wkp.routers import router as wkp_router
from app.domains.att.routers import (
    org_router as att_org_router,
    sheet_router as att_sheet_router,
    self_router as att_self_router,
    qr_router as att_qr_router,
)

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


# -- 애플리케이션 수명 주기 이벤트 핸들러 --
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    시작 시 설정을 점검하고(개발 환경에서는 테이블 생성), 종료 시 DB 연결 풀을 정리합니다.
    """
    logger.info("Starting %s (%s)", settings.APP_NAME, settings.APP_ENV)
    if settings.QR_SECRET is None:
        logger.warning("QR_SECRET is not set; QR attendance endpoints will return 500 until it is configured.")
    if settings.APP_ENV == "development":
        await create_db_and_tables()

    yield  # 애플리케이션 실행

    logger.info("Shutting down %s", settings.APP_NAME)
    await engine.dispose()


# -- FastAPI 애플리케이션 인스턴스 생성 --
app = FastAPI(
    title="WFM API",
    description="Workforce Management (WFM) API for organizations, workplaces, worker assignments and attendance.",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# -- CORS 미들웨어 설정 --
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -- 도메인 예외 핸들러 --
@app.exception_handler(RoleAuthorizationError)
async def role_authorization_error_handler(request: Request, exc: RoleAuthorizationError) -> JSONResponse:
    logger.info("Role check failed on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": str(exc)})


@app.exception_handler(QrConfigurationError)
async def qr_configuration_error_handler(request: Request, exc: QrConfigurationError) -> JSONResponse:
    logger.error("QR attendance is misconfigured: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "QR attendance is not configured on this server."},
    )


# -- 도메인 라우터 포함 --
app.include_router(usr_router, prefix=f"{API_PREFIX}/usr")
app.include_router(org_router, prefix=f"{API_PREFIX}/orgs")
app.include_router(wkp_router, prefix=f"{API_PREFIX}/orgs/{{org_id}}/workplaces")
app.include_router(att_org_router, prefix=f"{API_PREFIX}/orgs/{{org_id}}/attendance")
app.include_router(att_sheet_router, prefix=f"{API_PREFIX}/orgs/{{org_id}}/workplaces/{{workplace_id}}/attendance")
app.include_router(att_qr_router, prefix=f"{API_PREFIX}/attendance/qr")
app.include_router(att_self_router, prefix=f"{API_PREFIX}/attendance")


# -- 루트 엔드포인트 --
@app.get("/", summary="API Root", response_description="Welcome message and documentation link.")
async def read_root():
    return {"message": "Welcome to WFM API. Visit /docs for interactive API documentation."}


# -- 헬스 체크 엔드포인트 --
@app.get("/health-check", summary="Health Check", response_description="Status of the application and database connection.")
async def health_check(session: AsyncSession = Depends(get_session)):
    """
    데이터베이스에 가벼운 쿼리를 실행하여 서비스의 정상 작동 여부를 확인합니다.
    """
    try:
        result = await session.execute(text("SELECT 1"))
        if result.scalar() == 1:
            return {"status": "ok", "database_connection": "successful"}
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database health check failed: No result from test query"
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Database health check failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database connection error during health check: {e}"
        )
